"""Shared test fixtures: in-memory database, fake clock, stub market data, price
feed and API client."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coinfolio.database import Base, get_db
from coinfolio.dependencies.services import (
    get_dashboard_service,
    get_market_gateway,
    get_news_client,
    get_price_subscriptions,
)
from coinfolio.init_db import seed_staking_plans
from coinfolio.main import app
from coinfolio.models import Portfolio, StakingPlan
from coinfolio.rate_limiter import limiter
from coinfolio.services.dashboard import DashboardService
from coinfolio.services.market_data import MarketDataGateway
from coinfolio.services.prices import PriceSubscriptionManager
from coinfolio.services.shared.cache import TTLCache

START = datetime(2026, 1, 1, 12, 0, 0)


class FakeClock:
    """Manually advanced clock returning naive UTC datetimes."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class StubCoinGeckoClient:
    """Stands in for CoinGeckoClient with canned responses."""

    def __init__(self, prices: dict[str, float] | None = None, markets: list[dict] | None = None):
        self.prices = prices if prices is not None else {"bitcoin": 50000.0, "ethereum": 3000.0}
        self.markets = markets if markets is not None else []
        self.error: Exception | None = None
        self.calls: list[str] = []

    def _maybe_raise(self, name: str) -> None:
        self.calls.append(name)
        if self.error is not None:
            raise self.error

    def get_simple_prices(self, coin_ids, vs_currency="usd"):
        self._maybe_raise("get_simple_prices")
        return {
            coin_id: {vs_currency: self.prices[coin_id]}
            for coin_id in coin_ids
            if coin_id in self.prices
        }

    def get_markets(self, vs_currency="usd", per_page=50, page=1, ids=None):
        self._maybe_raise("get_markets")
        rows = [row for row in self.markets if ids is None or row["id"] in ids]
        return rows[:per_page]

    def get_global(self):
        self._maybe_raise("get_global")
        return {
            "total_market_cap": {"usd": 2.5e12},
            "total_volume": {"usd": 1.1e11},
            "market_cap_percentage": {"btc": 51.234, "eth": 17.891},
        }

    def get_coin(self, coin_id):
        self._maybe_raise("get_coin")
        return {
            "id": coin_id,
            "symbol": coin_id[:3],
            "name": coin_id.title(),
            "description": {"en": f"About {coin_id}"},
            "image": {"large": f"https://img.example/{coin_id}.png"},
            "links": {"homepage": [f"https://{coin_id}.org", ""]},
            "market_data": {
                "current_price": {"usd": self.prices.get(coin_id, 1.0)},
                "market_cap": {"usd": 1e9},
                "total_volume": {"usd": 1e8},
                "price_change_percentage_24h": 2.5,
                "circulating_supply": 19000000,
                "total_supply": 21000000,
            },
        }


class StubNewsClient:
    def __init__(self, articles=None):
        self.articles = articles or []
        self.error: Exception | None = None

    def get_latest_news(self, limit=20, categories=None):
        if self.error is not None:
            raise self.error
        return self.articles[:limit]


class FakeTransport:
    """Records control frames instead of talking to a socket."""

    def __init__(self, connected: bool = True):
        self.connected = connected
        self.frames: list[tuple[str, list[str]]] = []
        self.on_update = None
        self.on_open = None
        self.started = False
        self.reconnects = 0

    @property
    def is_connected(self) -> bool:
        return self.connected

    def set_callbacks(self, on_update, on_open):
        self.on_update = on_update
        self.on_open = on_open

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def reconnect(self):
        self.reconnects += 1
        if self.on_open is not None:
            self.on_open()

    def send_subscribe(self, symbols):
        self.frames.append(("SUBSCRIBE", list(symbols)))

    def send_unsubscribe(self, symbols):
        self.frames.append(("UNSUBSCRIBE", list(symbols)))

    def push(self, update):
        """Deliver an update as if it arrived from the feed."""
        self.on_update(update)


def _market_row(coin_id: str, symbol: str, price: float, market_cap: float, change: float) -> dict:
    """A /coins/markets row as CoinGecko returns it."""
    return {
        "id": coin_id,
        "symbol": symbol,
        "name": coin_id.title(),
        "current_price": price,
        "market_cap": market_cap,
        "total_volume": market_cap / 20,
        "price_change_percentage_24h": change,
        "market_cap_rank": None,
        "image": None,
    }


@pytest.fixture
def market_row():
    """Factory for /coins/markets rows."""
    return _market_row


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coingecko():
    return StubCoinGeckoClient()


@pytest.fixture
def market_cache(clock):
    """Cache shared by the gateway and the API client's dashboard."""
    return TTLCache(clock=clock)


@pytest.fixture
def gateway(coingecko, market_cache):
    return MarketDataGateway(client=coingecko, cache=market_cache, cache_ttl=60)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def price_subscriptions(transport):
    return PriceSubscriptionManager(transport)


@pytest.fixture
def plans(db):
    """The default Flexible / Standard / Premium plans, keyed by lock period in days."""
    seed_staking_plans(db)
    return {plan.lock_period_days: plan for plan in db.query(StakingPlan).all()}


@pytest.fixture
def portfolio(db):
    portfolio = Portfolio(user_id="user-1", name="Main")
    db.add(portfolio)
    db.commit()
    return portfolio


@pytest.fixture
def news_client():
    return StubNewsClient()


@pytest.fixture
def api_client(session_factory, gateway, market_cache, news_client, price_subscriptions, clock):
    """TestClient over the in-memory database with stubbed market data.

    Yields a tuple of (TestClient, SessionMaker).
    """
    limiter.reset()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    dashboard = DashboardService(
        session_factory=session_factory,
        gateway=gateway,
        news_client=news_client,
        cache=market_cache,
        clock=clock,
        max_workers=1,
    )

    with session_factory() as db:
        seed_staking_plans(db)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_gateway] = lambda: gateway
    app.dependency_overrides[get_news_client] = lambda: news_client
    app.dependency_overrides[get_dashboard_service] = lambda: dashboard
    app.dependency_overrides[get_price_subscriptions] = lambda: price_subscriptions

    with TestClient(app) as test_client:
        yield test_client, session_factory

    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user-1"}
