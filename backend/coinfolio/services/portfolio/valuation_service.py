"""Portfolio valuation service - prices holdings and derives summaries."""

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from coinfolio.services.portfolio import valuation
from coinfolio.services.portfolio.valuation_types import (
    AssetAllocation,
    HoldingValue,
    PortfolioSummary,
)
from coinfolio.services.repositories import PortfolioRepository, SnapshotRepository
from coinfolio.services.shared.clock import Clock, utc_now

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coinfolio.models import Holding
    from coinfolio.services.market_data import MarketDataGateway

logger = logging.getLogger(__name__)

# (summary attribute, look-back window)
PERIODS = (
    ("daily_change", timedelta(days=1)),
    ("weekly_change", timedelta(days=7)),
    ("monthly_change", timedelta(days=30)),
)


class PortfolioValuationService:
    """Values a user's holdings at current market prices."""

    def __init__(self, db: Session, gateway: "MarketDataGateway", clock: Clock = utc_now) -> None:
        self._db = db
        self._gateway = gateway
        self._clock = clock
        self._portfolios = PortfolioRepository(db)
        self._snapshots = SnapshotRepository(db)

    def value_holdings(self, holdings: "Sequence[Holding]") -> list[HoldingValue]:
        """Value holdings in one price lookup, dropping any coin that has no price."""
        if not holdings:
            return []
        prices = self._gateway.get_prices([h.coin_id for h in holdings])
        if prices.is_fallback:
            logger.warning(f"Valuing holdings with fallback prices ({prices.reason})")

        valued = valuation.value_holdings(holdings, prices.data)
        if len(valued) < len(holdings):
            missing = sorted({h.coin_id for h in holdings} - set(prices.data))
            logger.warning(f"No price for {', '.join(missing)}; excluded from valuation")
        return valued

    def get_holdings(self, user_id: str, portfolio_id: str | None = None) -> list[HoldingValue]:
        return self.value_holdings(self._portfolios.find_holdings(user_id, portfolio_id))

    def get_allocation(
        self, user_id: str, portfolio_id: str | None = None
    ) -> list[AssetAllocation]:
        return valuation.allocate(self.get_holdings(user_id, portfolio_id))

    def get_summary(self, user_id: str, portfolio_id: str | None = None) -> PortfolioSummary:
        summary = valuation.valuate(self.get_holdings(user_id, portfolio_id))
        self._apply_history(summary, user_id, portfolio_id)
        return summary

    def _apply_history(
        self, summary: PortfolioSummary, user_id: str, portfolio_id: str | None
    ) -> None:
        """Fill period changes and all-time extremes from stored snapshots."""
        now = self._clock()
        for attribute, window in PERIODS:
            snapshot = self._snapshots.find_latest_before(user_id, now - window, portfolio_id)
            previous = snapshot.total_value if snapshot else None
            setattr(summary, attribute, valuation.percent_change(summary.total_value, previous))

        history = [s.total_value for s in self._snapshots.find_range(user_id, portfolio_id)]
        if history:
            history.append(summary.total_value)
            summary.all_time_high = max(history)
            summary.all_time_low = min(history)
