"""Staking plan, position and reward data access layer."""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from coinfolio.constants import PositionStatus
from coinfolio.models import StakingPlan, StakingPosition, StakingReward

from .exceptions import NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence


class StakingRepository:
    """Centralized staking data access.

    Naming conventions:
    - find_* : Query that may return None or empty list
    - get_* : Query that raises NotFoundError if missing
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_active_plans(self) -> "Sequence[StakingPlan]":
        return (
            self._db.query(StakingPlan)
            .filter(StakingPlan.is_active.is_(True))
            .order_by(StakingPlan.apy.asc())
            .all()
        )

    def find_plan(self, plan_id: int) -> StakingPlan | None:
        return self._db.query(StakingPlan).filter(StakingPlan.id == plan_id).first()

    def get_plan(self, plan_id: int) -> StakingPlan:
        plan = self.find_plan(plan_id)
        if plan is None:
            raise NotFoundError("StakingPlan", plan_id)
        return plan

    def find_position(self, position_id: int) -> StakingPosition | None:
        return self._db.query(StakingPosition).filter(StakingPosition.id == position_id).first()

    def get_position(self, position_id: int, user_id: str | None = None) -> StakingPosition:
        """Get a position, optionally requiring it to belong to ``user_id``."""
        position = self.find_position(position_id)
        if position is None or (user_id is not None and position.user_id != user_id):
            raise NotFoundError("StakingPosition", position_id)
        return position

    def find_positions(self, user_id: str) -> "Sequence[StakingPosition]":
        """Find all of a user's positions, newest first."""
        return (
            self._db.query(StakingPosition)
            .filter(StakingPosition.user_id == user_id)
            .order_by(StakingPosition.created_at.desc(), StakingPosition.id.desc())
            .all()
        )

    def find_active_positions(self, user_id: str | None = None) -> "Sequence[StakingPosition]":
        """Find active positions for one user, or for everyone when user_id is None."""
        query = self._db.query(StakingPosition).filter(
            StakingPosition.status == PositionStatus.ACTIVE
        )
        if user_id is not None:
            query = query.filter(StakingPosition.user_id == user_id)
        return query.order_by(StakingPosition.id).all()

    def find_rewards(self, position_id: int) -> "Sequence[StakingReward]":
        return (
            self._db.query(StakingReward)
            .filter(StakingReward.staking_position_id == position_id)
            .order_by(StakingReward.reward_date, StakingReward.id)
            .all()
        )

    def add(self, entity: StakingPosition | StakingReward | StakingPlan):
        self._db.add(entity)
        self._db.flush()
        return entity
