"""Portfolio valuation formulas.

Every call site that needs holding value, cost, profit or allocation goes
through these functions. Values keep full Decimal precision; rounding is a
presentation concern.
"""

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from coinfolio.models import Holding
from coinfolio.services.portfolio.valuation_types import (
    AssetAllocation,
    HoldingValue,
    PortfolioSummary,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def holding_value(quantity: Decimal, price: Decimal) -> Decimal:
    return quantity * price


def holding_cost(quantity: Decimal, average_buy_price: Decimal) -> Decimal:
    return quantity * average_buy_price


def profit_percentage(profit: Decimal, cost: Decimal) -> Decimal:
    """Profit as a percentage of cost; 0 when there is no cost."""
    if cost == ZERO:
        return ZERO
    return profit / cost * HUNDRED


def percent_change(current: Decimal, previous: Decimal | None) -> Decimal | None:
    """Percentage change from ``previous`` to ``current``; None when undefined."""
    if previous is None or previous == ZERO:
        return None
    return (current - previous) / previous * HUNDRED


def value_holding(holding: Holding, price: Decimal) -> HoldingValue:
    value = holding_value(holding.quantity, price)
    cost = holding_cost(holding.quantity, holding.average_buy_price)
    profit = value - cost
    return HoldingValue(
        holding_id=holding.id,
        portfolio_id=holding.portfolio_id,
        coin_id=holding.coin_id,
        symbol=holding.symbol,
        name=holding.name or holding.symbol,
        quantity=holding.quantity,
        average_buy_price=holding.average_buy_price,
        current_price=price,
        value=value,
        cost=cost,
        profit=profit,
        profit_percentage=profit_percentage(profit, cost),
    )


def value_holdings(holdings: Iterable[Holding], prices: Mapping[str, Decimal]) -> list[HoldingValue]:
    """Value each holding at its coin's price. Holdings without a price are left out."""
    return [
        value_holding(holding, prices[holding.coin_id])
        for holding in holdings
        if holding.coin_id in prices
    ]


def valuate(holdings: Iterable[HoldingValue]) -> PortfolioSummary:
    """Aggregate value, cost and profit across valued holdings."""
    holdings = list(holdings)
    total_value = sum((h.value for h in holdings), ZERO)
    total_cost = sum((h.cost for h in holdings), ZERO)
    total_profit = total_value - total_cost
    return PortfolioSummary(
        total_value=total_value,
        total_cost=total_cost,
        total_profit=total_profit,
        profit_percentage=profit_percentage(total_profit, total_cost),
        holdings_count=len(holdings),
    )


def allocate(holdings: Sequence[HoldingValue]) -> list[AssetAllocation]:
    """Each holding's percentage of total value; all zero when the total is zero."""
    total_value = sum((h.value for h in holdings), ZERO)
    return [
        AssetAllocation(
            coin_id=h.coin_id,
            name=h.name,
            symbol=h.symbol,
            value=h.value,
            percentage=h.value / total_value * HUNDRED if total_value != ZERO else ZERO,
        )
        for h in holdings
    ]
