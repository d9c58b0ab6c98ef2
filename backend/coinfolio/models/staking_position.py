"""Staking position model - one user's stake under a plan."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from coinfolio.constants import PositionStatus
from coinfolio.database import Base


class StakingPosition(Base):
    """Staking position.

    ``last_reward_date`` is the accrual checkpoint: rewards are computed from it
    (or from ``start_date`` before the first accrual) up to the accrual time.
    ``version`` is bumped by SQLAlchemy on every flush so concurrent writers
    from other processes fail with ``StaleDataError`` instead of overwriting.
    """

    __tablename__ = "staking_positions"
    __table_args__ = (
        Index("idx_staking_positions_user", "user_id"),
        Index("idx_staking_positions_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(36))
    staking_plan_id: Mapped[int] = mapped_column(ForeignKey("staking_plans.id"))
    coin_id: Mapped[str] = mapped_column(String(100))
    amount: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    start_date: Mapped[datetime]
    end_date: Mapped[datetime | None]
    total_rewards: Mapped[Decimal] = mapped_column(Numeric(28, 10), default=Decimal("0"))
    last_reward_date: Mapped[datetime | None]
    status: Mapped[str] = mapped_column(String(20), default=PositionStatus.ACTIVE)
    withdrawn_at: Mapped[datetime | None]
    payout_amount: Mapped[Decimal | None] = mapped_column(Numeric(28, 10))
    penalty_amount: Mapped[Decimal | None] = mapped_column(Numeric(28, 10))
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    plan: Mapped["StakingPlan"] = relationship(lazy="joined")  # noqa: F821
    rewards: Mapped[list["StakingReward"]] = relationship(  # noqa: F821
        back_populates="position", order_by="StakingReward.reward_date"
    )

    @property
    def is_active(self) -> bool:
        return self.status == PositionStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<StakingPosition(id={self.id}, user_id='{self.user_id}', amount={self.amount}, status='{self.status}')>"
