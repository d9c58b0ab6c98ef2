"""Return and risk metrics over a series of portfolio values.

Values are treated as one observation per day, so period returns are
annualized over 365 periods.
"""

from collections.abc import Sequence
from decimal import Decimal

from coinfolio.services.portfolio.valuation_types import PortfolioMetrics

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
PERIODS_PER_YEAR = 365


def period_returns(values: Sequence[Decimal]) -> list[Decimal]:
    """Fractional change between consecutive values, skipping zero bases."""
    return [
        (current - previous) / previous
        for previous, current in zip(values, values[1:])
        if previous != ZERO
    ]


def max_drawdown(values: Sequence[Decimal]) -> Decimal:
    """Largest fractional fall from a running peak."""
    worst = ZERO
    peak = values[0] if values else ZERO
    for value in values:
        peak = max(peak, value)
        if peak > ZERO:
            worst = max(worst, (peak - value) / peak)
    return worst


def performance_metrics(
    values: Sequence[Decimal], risk_free_rate_pct: Decimal = Decimal("2")
) -> PortfolioMetrics:
    """Total and annualized return, annualized volatility, Sharpe ratio and max drawdown."""
    if len(values) < 2:
        return PortfolioMetrics.empty(len(values))
    returns = period_returns(values)
    if not returns:
        return PortfolioMetrics.empty(len(values))

    first, last = values[0], values[-1]
    total_return = (last - first) / first if first != ZERO else ZERO
    average = sum(returns, ZERO) / len(returns)
    annualized = (ONE + average) ** PERIODS_PER_YEAR - ONE
    variance = sum(((r - average) ** 2 for r in returns), ZERO) / len(returns)
    volatility = variance.sqrt() * Decimal(PERIODS_PER_YEAR).sqrt()
    risk_free = risk_free_rate_pct / HUNDRED
    sharpe = (annualized - risk_free) / volatility if volatility > ZERO else ZERO

    return PortfolioMetrics(
        total_return=total_return * HUNDRED,
        annualized_return=annualized * HUNDRED,
        volatility=volatility * HUNDRED,
        sharpe_ratio=sharpe,
        max_drawdown=max_drawdown(values) * HUNDRED,
        snapshot_count=len(values),
    )
