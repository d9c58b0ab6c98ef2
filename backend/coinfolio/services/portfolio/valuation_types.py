"""Value objects for portfolio valuation."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class HoldingValue:
    """Calculated values for a single holding at one price."""

    holding_id: int
    portfolio_id: str
    coin_id: str
    symbol: str
    name: str
    quantity: Decimal
    average_buy_price: Decimal
    current_price: Decimal

    value: Decimal
    cost: Decimal
    profit: Decimal
    profit_percentage: Decimal


@dataclass
class PortfolioSummary:
    """Aggregate figures across valued holdings.

    Period changes are percentages against the latest snapshot at or before the
    period start, and None when no such snapshot exists.
    """

    total_value: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_percentage: Decimal
    holdings_count: int = 0

    daily_change: Decimal | None = None
    weekly_change: Decimal | None = None
    monthly_change: Decimal | None = None
    all_time_high: Decimal | None = None
    all_time_low: Decimal | None = None

    @classmethod
    def empty(cls) -> "PortfolioSummary":
        zero = Decimal("0")
        return cls(total_value=zero, total_cost=zero, total_profit=zero, profit_percentage=zero)


@dataclass
class AssetAllocation:
    """A holding's share of total portfolio value. Derived, never persisted."""

    coin_id: str
    name: str
    symbol: str
    value: Decimal
    percentage: Decimal


@dataclass
class PortfolioMetrics:
    """Risk and return figures over a snapshot history, as percentages.

    ``sharpe_ratio`` is a plain ratio. Every figure is 0 with fewer than two
    snapshots.
    """

    total_return: Decimal
    annualized_return: Decimal
    volatility: Decimal
    sharpe_ratio: Decimal
    max_drawdown: Decimal
    snapshot_count: int = 0

    @classmethod
    def empty(cls, snapshot_count: int = 0) -> "PortfolioMetrics":
        zero = Decimal("0")
        return cls(
            total_return=zero,
            annualized_return=zero,
            volatility=zero,
            sharpe_ratio=zero,
            max_drawdown=zero,
            snapshot_count=snapshot_count,
        )
