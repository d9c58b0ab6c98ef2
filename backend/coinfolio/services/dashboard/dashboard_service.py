"""Dashboard aggregator.

Builds the dashboard from nine independent slices fetched concurrently on a
thread pool. Each slice has its own failure boundary: an exception is logged
and replaced by that slice's empty default, and the slice is listed in
``DashboardData.degraded``. Market slices that came back as fallback data are
listed there too. The assembled result is cached per user.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from coinfolio.config import settings
from coinfolio.constants import CacheKey
from coinfolio.models import Transaction
from coinfolio.services.market_data import Fallback, MarketDataGateway, Ok
from coinfolio.services.market_data.market_types import CoinSnapshot, GainersLosers, MarketSummary
from coinfolio.services.news.news_client import NewsArticle, NewsClient
from coinfolio.services.portfolio.ledger_service import LedgerService
from coinfolio.services.portfolio.valuation_service import PortfolioValuationService
from coinfolio.services.portfolio.valuation_types import (
    AssetAllocation,
    HoldingValue,
    PortfolioSummary,
)
from coinfolio.services.shared.cache import TTLCache
from coinfolio.services.shared.clock import Clock, utc_now

logger = logging.getLogger(__name__)

TOP_CRYPTOS_LIMIT = 10
TRENDING_LIMIT = 6
GAINERS_LOSERS_LIMIT = 5
NEWS_LIMIT = 6
TOP_HOLDINGS_LIMIT = 5
RECENT_TRANSACTIONS_LIMIT = 5

_ZERO = Decimal("0")


@dataclass
class DashboardData:
    market_overview: MarketSummary
    top_cryptos: list[CoinSnapshot]
    trending_coins: list[CoinSnapshot]
    gainers_losers: GainersLosers
    latest_news: list[NewsArticle]
    portfolio_summary: PortfolioSummary
    top_holdings: list[HoldingValue]
    asset_allocation: list[AssetAllocation]
    recent_transactions: list[Transaction]
    generated_at: datetime
    degraded: list[str] = field(default_factory=list)


# Value used for a slice whose fetch raised
SLICE_DEFAULTS: dict[str, Callable[[], Any]] = {
    "market_overview": lambda: MarketSummary(_ZERO, _ZERO, _ZERO, _ZERO),
    "top_cryptos": list,
    "trending_coins": list,
    "gainers_losers": GainersLosers,
    "latest_news": list,
    "portfolio_summary": PortfolioSummary.empty,
    "top_holdings": list,
    "asset_allocation": list,
    "recent_transactions": list,
}


class DashboardService:
    """Assembles and caches the per-user dashboard.

    Database-backed slices open their own session from ``session_factory``
    because a SQLAlchemy session must not be shared across threads.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        gateway: MarketDataGateway,
        news_client: NewsClient,
        cache: TTLCache,
        clock: Clock = utc_now,
        cache_ttl: float | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._gateway = gateway
        self._news = news_client
        self._cache = cache
        self._clock = clock
        self._ttl = settings.dashboard_cache_ttl_seconds if cache_ttl is None else cache_ttl
        self._max_workers = max_workers or settings.dashboard_max_workers

    @staticmethod
    def cache_key(user_id: str) -> str:
        return f"{CacheKey.DASHBOARD}:{user_id}"

    def get_dashboard_data(self, user_id: str) -> DashboardData:
        return self._cache.get_or_compute(
            self.cache_key(user_id), lambda: self._build(user_id), self._ttl
        )

    def invalidate(self, user_id: str) -> None:
        self._cache.delete(self.cache_key(user_id))

    def _build(self, user_id: str) -> DashboardData:
        slices: dict[str, Callable[[], Any]] = {
            "market_overview": self._gateway.get_market_summary,
            "top_cryptos": lambda: self._gateway.get_top_coins(TOP_CRYPTOS_LIMIT),
            "trending_coins": lambda: self._gateway.get_popular_coins(TRENDING_LIMIT),
            "gainers_losers": lambda: self._gateway.get_gainers_losers(GAINERS_LOSERS_LIMIT),
            "latest_news": lambda: self._news.get_latest_news(NEWS_LIMIT),
            "portfolio_summary": lambda: self._with_valuation(lambda v: v.get_summary(user_id)),
            "top_holdings": lambda: self._top_holdings(user_id),
            "asset_allocation": lambda: self._with_valuation(lambda v: v.get_allocation(user_id)),
            "recent_transactions": lambda: self._recent_transactions(user_id),
        }

        results: dict[str, Any] = {}
        degraded: list[str] = []
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="dashboard"
        ) as executor:
            futures = {name: executor.submit(fetch) for name, fetch in slices.items()}
            for name, future in futures.items():
                try:
                    value = future.result()
                except Exception:
                    logger.exception(f"Dashboard slice '{name}' failed for user {user_id}")
                    degraded.append(name)
                    value = SLICE_DEFAULTS[name]()

                if isinstance(value, Ok | Fallback):
                    if value.is_fallback:
                        degraded.append(name)
                    value = value.data
                results[name] = value

        if degraded:
            logger.warning(f"Dashboard for {user_id} degraded: {', '.join(degraded)}")
        return DashboardData(**results, generated_at=self._clock(), degraded=degraded)

    def _with_valuation(self, fn: Callable[[PortfolioValuationService], Any]) -> Any:
        with self._session_factory() as db:
            return fn(PortfolioValuationService(db, self._gateway, self._clock))

    def _top_holdings(self, user_id: str) -> list[HoldingValue]:
        holdings = self._with_valuation(lambda v: v.get_holdings(user_id))
        holdings.sort(key=lambda h: h.value, reverse=True)
        return holdings[:TOP_HOLDINGS_LIMIT]

    def _recent_transactions(self, user_id: str) -> list[Transaction]:
        with self._session_factory() as db:
            return LedgerService(db, self._clock).list_transactions(
                user_id, limit=RECENT_TRANSACTIONS_LIMIT
            )
