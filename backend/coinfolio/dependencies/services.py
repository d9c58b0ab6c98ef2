"""Service wiring for routes.

Process-wide components (cache, market gateway, news client, dashboard and
the live price stream) are built once; request-scoped services get the
request's database session.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from coinfolio.config import settings
from coinfolio.database import SessionLocal, get_db
from coinfolio.services.dashboard import DashboardService
from coinfolio.services.market_data import MarketDataGateway
from coinfolio.services.news.news_client import NewsClient
from coinfolio.services.portfolio import LedgerService, PortfolioValuationService, SnapshotService
from coinfolio.services.prices import BinancePriceStream, PriceSubscriptionManager
from coinfolio.services.shared.cache import TTLCache
from coinfolio.services.staking import StakingService


@lru_cache
def get_cache() -> TTLCache:
    return TTLCache(default_ttl=settings.dashboard_cache_ttl_seconds)


@lru_cache
def get_market_gateway() -> MarketDataGateway:
    return MarketDataGateway(cache=get_cache())


@lru_cache
def get_news_client() -> NewsClient:
    return NewsClient()


@lru_cache
def get_price_subscriptions() -> PriceSubscriptionManager:
    return PriceSubscriptionManager(BinancePriceStream())


@lru_cache
def get_dashboard_service() -> DashboardService:
    return DashboardService(
        session_factory=SessionLocal,
        gateway=get_market_gateway(),
        news_client=get_news_client(),
        cache=get_cache(),
    )


def get_ledger_service(db: Session = Depends(get_db)) -> LedgerService:
    return LedgerService(db)


def get_valuation_service(
    db: Session = Depends(get_db),
    gateway: MarketDataGateway = Depends(get_market_gateway),
) -> PortfolioValuationService:
    return PortfolioValuationService(db, gateway)


def get_snapshot_service(
    db: Session = Depends(get_db),
    valuation: PortfolioValuationService = Depends(get_valuation_service),
) -> SnapshotService:
    return SnapshotService(db, valuation)


def get_staking_service(
    db: Session = Depends(get_db),
    gateway: MarketDataGateway = Depends(get_market_gateway),
) -> StakingService:
    return StakingService(db, gateway=gateway)
