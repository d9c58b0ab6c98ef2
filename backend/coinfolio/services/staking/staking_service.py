"""Staking lifecycle manager.

Positions move ``active -> withdrawn`` and never back. Every mutation of a
position runs under a per-position in-process lock, and the row's version
column rejects a concurrent write from another process at commit time.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from coinfolio.config import settings
from coinfolio.constants import PositionStatus
from coinfolio.models import StakingPlan, StakingPosition, StakingReward
from coinfolio.services.exceptions import (
    InvalidStateError,
    LockedError,
    ServiceError,
    UpstreamUnavailable,
    ValidationError,
)
from coinfolio.services.market_data import fallback_data
from coinfolio.services.repositories import StakingRepository
from coinfolio.services.shared.clock import Clock, utc_now
from coinfolio.services.shared.keyed_lock import KeyedLock
from coinfolio.services.staking import rewards
from coinfolio.services.staking.staking_types import (
    AccrualRunResult,
    PositionDetails,
    StakingOverview,
    StakingSummary,
    WithdrawalResult,
)

if TYPE_CHECKING:
    from coinfolio.services.market_data import MarketDataGateway

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Shared by every StakingService in the process
_position_locks = KeyedLock()


class StakingService:
    """Creates, accrues, withdraws and summarizes staking positions.

    Usage:
        service = StakingService(db, gateway=gateway)
        position = service.create_position(user_id, plan_id=1, coin_id="ethereum", amount=Decimal("2"))
        service.accrue(position.id)
        result = service.withdraw(user_id, position.id, early_withdrawal=True)
    """

    def __init__(
        self,
        db: Session,
        gateway: "MarketDataGateway | None" = None,
        clock: Clock = utc_now,
        penalty_pct: Decimal | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self._db = db
        self._gateway = gateway
        self._clock = clock
        self._penalty_pct = (
            settings.early_withdrawal_penalty_pct if penalty_pct is None else penalty_pct
        )
        self._locks = locks if locks is not None else _position_locks
        self._repo = StakingRepository(db)

    # --- plans -------------------------------------------------------------

    def list_plans(self) -> list[StakingPlan]:
        return list(self._repo.find_active_plans())

    # --- lifecycle ---------------------------------------------------------

    def create_position(
        self, user_id: str, plan_id: int, coin_id: str, amount: Decimal
    ) -> StakingPosition:
        """Open a position under ``plan_id``.

        Raises:
            NotFoundError: Unknown plan.
            ValidationError: Inactive plan, amount outside the plan's limits, or
                unsupported coin. Nothing is stored.
            UpstreamUnavailable: The store rejected the write.
        """
        plan = self._repo.get_plan(plan_id)
        self._validate_stake(plan, coin_id, amount)

        now = self._clock()
        position = StakingPosition(
            user_id=user_id,
            staking_plan_id=plan.id,
            plan=plan,
            coin_id=coin_id,
            amount=amount,
            start_date=now,
            end_date=rewards.lock_end_date(now, plan.lock_period_days),
            total_rewards=ZERO,
            status=PositionStatus.ACTIVE,
        )
        try:
            self._repo.add(position)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Failed to create staking position for {user_id}: {e}")
            raise UpstreamUnavailable("Could not save staking position") from e

        logger.info(f"User {user_id} staked {amount} {coin_id} in plan '{plan.name}'")
        return position

    @staticmethod
    def _validate_stake(plan: StakingPlan, coin_id: str, amount: Decimal) -> None:
        if not plan.is_active:
            raise ValidationError(f"Staking plan '{plan.name}' is not active")
        if amount <= ZERO:
            raise ValidationError("Amount must be positive")
        if amount < plan.minimum_amount:
            raise ValidationError(f"Minimum staking amount is {plan.minimum_amount}")
        if plan.maximum_amount is not None and amount > plan.maximum_amount:
            raise ValidationError(f"Maximum staking amount is {plan.maximum_amount}")
        if not plan.supports(coin_id):
            raise ValidationError(f"{coin_id} is not supported by plan '{plan.name}'")

    def accrue(self, position_id: int) -> Decimal:
        """Credit rewards earned since the last checkpoint and return the amount.

        Withdrawn positions are left untouched and yield 0.
        """
        with self._locks.hold(position_id):
            position = self._repo.get_position(position_id)
            self._db.refresh(position)
            reward = self._accrue_position(position, self._clock())
            if reward > ZERO:
                self._commit(position)
            return reward

    def _accrue_position(self, position: StakingPosition, now: datetime) -> Decimal:
        if not position.is_active:
            return ZERO

        checkpoint = position.last_reward_date or position.start_date
        elapsed = int((now - checkpoint).total_seconds())
        apy = position.plan.apy
        reward = rewards.compute_reward(position.amount, apy, elapsed)
        # Keep the checkpoint so sub-quantum intervals keep accumulating
        if reward <= ZERO:
            return ZERO

        self._db.add(
            StakingReward(
                staking_position_id=position.id,
                amount=reward,
                reward_date=now,
                apy_rate=apy,
                principal=position.amount,
                elapsed_seconds=elapsed,
            )
        )
        position.total_rewards = (position.total_rewards or ZERO) + reward
        position.last_reward_date = now
        return reward

    def accrue_all_active(self) -> AccrualRunResult:
        """Accrue every active position; failures are counted, not raised."""
        positions = self._repo.find_active_positions()
        updated = errors = 0
        rewarded = ZERO
        for position in positions:
            try:
                reward = self.accrue(position.id)
            except (ServiceError, SQLAlchemyError) as e:
                errors += 1
                logger.error(f"Reward accrual failed for position {position.id}: {e}")
                continue
            if reward > ZERO:
                updated += 1
                rewarded += reward

        logger.info(
            f"Accrual run: {updated}/{len(positions)} positions updated, {errors} errors, "
            f"{rewarded} rewarded"
        )
        return AccrualRunResult(
            total=len(positions), updated=updated, errors=errors, rewarded=rewarded
        )

    def is_unlocked(self, position: StakingPosition, now: datetime | None = None) -> bool:
        """True once the lock period is over (always true for flexible plans)."""
        if position.plan.lock_period_days == 0 or position.end_date is None:
            return True
        return (now or self._clock()) >= position.end_date

    def can_withdraw(self, position: StakingPosition, early_withdrawal: bool = False) -> bool:
        return position.is_active and (early_withdrawal or self.is_unlocked(position))

    def withdraw(
        self, user_id: str, position_id: int, early_withdrawal: bool = False
    ) -> WithdrawalResult:
        """Close a position, paying out principal plus rewards.

        A withdrawal before the lock ends requires ``early_withdrawal`` and
        forfeits the configured penalty percentage of the gross payout.

        Raises:
            NotFoundError: Position missing or owned by someone else.
            InvalidStateError: Already withdrawn, or changed concurrently.
            LockedError: Still locked and ``early_withdrawal`` not requested.
        """
        with self._locks.hold(position_id):
            position = self._repo.get_position(position_id, user_id)
            self._db.refresh(position)
            if not position.is_active:
                raise InvalidStateError(f"Staking position {position_id} is already withdrawn")

            now = self._clock()
            locked = not self.is_unlocked(position, now)
            if locked and not early_withdrawal:
                remaining = position.end_date - now
                raise LockedError(
                    f"Staking position {position_id} is locked until {position.end_date.isoformat()}",
                    unlocks_at=position.end_date,
                    remaining=remaining,
                )

            self._accrue_position(position, now)
            gross = position.amount + position.total_rewards
            penalty = rewards.early_withdrawal_penalty(gross, self._penalty_pct) if locked else ZERO
            payout = gross - penalty

            position.status = PositionStatus.WITHDRAWN
            position.withdrawn_at = now
            position.penalty_amount = penalty
            position.payout_amount = payout
            self._commit(position)

        logger.info(
            f"User {user_id} withdrew position {position_id}: payout={payout} penalty={penalty}"
        )
        return WithdrawalResult(
            position=position,
            principal=position.amount,
            rewards=position.total_rewards,
            penalty=penalty,
            payout=payout,
            early=locked,
        )

    def _commit(self, position: StakingPosition) -> None:
        try:
            self._db.commit()
        except StaleDataError as e:
            self._db.rollback()
            raise InvalidStateError(
                f"Staking position {position.id} was modified concurrently"
            ) from e
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Failed to update staking position {position.id}: {e}")
            raise UpstreamUnavailable("Could not save staking position") from e

    # --- read side ---------------------------------------------------------

    def get_positions(self, user_id: str) -> list[StakingPosition]:
        return list(self._repo.find_positions(user_id))

    def get_rewards(self, user_id: str, position_id: int) -> list[StakingReward]:
        """Reward ledger of an owned position, oldest first."""
        position = self._repo.get_position(position_id, user_id)
        return list(self._repo.find_rewards(position.id))

    def summarize(self, user_id: str) -> StakingSummary:
        """Totals over the user's active positions."""
        active = self._repo.find_active_positions(user_id)
        apys = [p.plan.apy for p in active]
        return StakingSummary(
            total_staked=sum((p.amount for p in active), ZERO),
            total_rewards=sum((p.total_rewards for p in active), ZERO),
            active_positions=len(active),
            projected_annual_income=sum(
                (rewards.projected_annual_reward(p.amount, p.plan.apy) for p in active), ZERO
            ),
            average_apy=sum(apys, ZERO) / len(apys) if apys else ZERO,
        )

    def get_positions_with_details(self, user_id: str) -> list[PositionDetails]:
        now = self._clock()
        details = []
        for position in self._repo.find_positions(user_id):
            name, symbol, price = self._coin_info(position.coin_id)
            unlocked = self.is_unlocked(position, now)
            days_remaining = max(0, (position.end_date - now).days) if position.end_date else 0
            details.append(
                PositionDetails(
                    position=position,
                    coin_name=name,
                    coin_symbol=symbol,
                    current_value=position.amount * price if price is not None else None,
                    projected_annual_reward=rewards.projected_annual_reward(
                        position.amount, position.plan.apy
                    ),
                    days_remaining=days_remaining,
                    can_withdraw=position.is_active and unlocked,
                    early_withdrawal_penalty=ZERO if unlocked else self._penalty_pct / 100,
                )
            )
        return details

    def _coin_info(self, coin_id: str) -> tuple[str, str, Decimal | None]:
        if self._gateway is None:
            return coin_id, coin_id.upper(), None
        result = self._gateway.get_coin(coin_id)
        coin = result.data
        # Generic placeholder figures are not a price for this coin
        if result.is_fallback and fallback_data.find_coin(coin_id) is None:
            return coin.name, coin.symbol, None
        return coin.name, coin.symbol, coin.current_price

    def load_staking_data(self, user_id: str) -> StakingOverview:
        """Plans, detailed positions and summary for the staking page."""
        return StakingOverview(
            plans=self.list_plans(),
            positions=self.get_positions_with_details(user_id),
            summary=self.summarize(user_id),
        )
