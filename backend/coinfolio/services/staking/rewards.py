"""Staking reward and penalty formulas.

Rewards accrue linearly on the principal (no compounding) per second of
elapsed time, and are truncated to 8 decimal places.
"""

from datetime import datetime, timedelta
from decimal import ROUND_DOWN, Decimal

from coinfolio.constants import SECONDS_PER_YEAR

ZERO = Decimal("0")
HUNDRED = Decimal("100")
REWARD_QUANTUM = Decimal("0.00000001")


def compute_reward(principal: Decimal, apy: Decimal, elapsed_seconds: int) -> Decimal:
    """principal × apy/100 × elapsed/year, or 0 for non-positive inputs."""
    if elapsed_seconds <= 0 or principal <= ZERO or apy <= ZERO:
        return ZERO
    raw = principal * (apy / HUNDRED) * (Decimal(elapsed_seconds) / Decimal(SECONDS_PER_YEAR))
    return raw.quantize(REWARD_QUANTUM, rounding=ROUND_DOWN)


def projected_annual_reward(principal: Decimal, apy: Decimal) -> Decimal:
    return principal * apy / HUNDRED


def lock_end_date(start: datetime, lock_period_days: int) -> datetime | None:
    """End of the lock period; None for flexible (0-day) plans."""
    if lock_period_days <= 0:
        return None
    return start + timedelta(days=lock_period_days)


def early_withdrawal_penalty(gross: Decimal, penalty_pct: Decimal) -> Decimal:
    """Penalty deducted from principal plus rewards on an early exit."""
    return (gross * penalty_pct / HUNDRED).quantize(REWARD_QUANTUM, rounding=ROUND_DOWN)
