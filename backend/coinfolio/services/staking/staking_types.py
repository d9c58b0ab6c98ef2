"""Value objects for the staking lifecycle."""

from dataclasses import dataclass
from decimal import Decimal

from coinfolio.models import StakingPlan, StakingPosition


@dataclass
class WithdrawalResult:
    position: StakingPosition
    principal: Decimal
    rewards: Decimal
    penalty: Decimal
    payout: Decimal
    early: bool


@dataclass
class StakingSummary:
    total_staked: Decimal
    total_rewards: Decimal
    active_positions: int
    projected_annual_income: Decimal
    average_apy: Decimal


@dataclass
class PositionDetails:
    """A position enriched with coin data and lock status."""

    position: StakingPosition
    coin_name: str
    coin_symbol: str
    current_value: Decimal | None  # None when no real price is known
    projected_annual_reward: Decimal
    days_remaining: int
    can_withdraw: bool
    early_withdrawal_penalty: Decimal  # fraction of payout, e.g. 0.1


@dataclass
class AccrualRunResult:
    total: int
    updated: int
    errors: int
    rewarded: Decimal


@dataclass
class StakingOverview:
    plans: list[StakingPlan]
    positions: list[PositionDetails]
    summary: StakingSummary
