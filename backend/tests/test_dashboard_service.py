"""Tests for DashboardService aggregation, failure isolation and caching."""

from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from coinfolio.dependencies.services import get_cache, get_dashboard_service, get_market_gateway
from coinfolio.models import Holding, Transaction
from coinfolio.services.dashboard import DashboardService
from coinfolio.services.news.news_client import NewsArticle
from coinfolio.services.shared.cache import TTLCache
from coinfolio.services.shared.http_client import FailureReason, HTTPClientError


@pytest.fixture
def dashboard(session_factory, gateway, news_client, clock):
    return DashboardService(
        session_factory=session_factory,
        gateway=gateway,
        news_client=news_client,
        cache=TTLCache(clock=clock),
        clock=clock,
        cache_ttl=300,
        max_workers=1,
    )


@pytest.fixture
def seeded(db, portfolio, coingecko, market_row, news_client):
    coingecko.markets = [
        market_row("bitcoin", "btc", 50000, 9.8e11, 2.0),
        market_row("ethereum", "eth", 3000, 3.6e11, -1.5),
        market_row("solana", "sol", 100, 4.5e10, 6.0),
    ]
    news_client.articles = [
        NewsArticle(
            id="1",
            title="Markets up",
            summary="Green day",
            url="https://news.example/1",
            source="Example",
            published_at=datetime(2026, 1, 1),
        )
    ]
    db.add_all(
        [
            Holding(
                portfolio_id=portfolio.id,
                user_id="user-1",
                coin_id="bitcoin",
                symbol="BTC",
                quantity=Decimal("1"),
                average_buy_price=Decimal("40000"),
            ),
            Holding(
                portfolio_id=portfolio.id,
                user_id="user-1",
                coin_id="ethereum",
                symbol="ETH",
                quantity=Decimal("10"),
                average_buy_price=Decimal("2000"),
            ),
            Transaction(
                user_id="user-1",
                portfolio_id=portfolio.id,
                type="buy",
                coin_id="bitcoin",
                symbol="BTC",
                quantity=Decimal("1"),
                price=Decimal("40000"),
                fee=Decimal("0"),
                transaction_date=datetime(2025, 12, 1),
            ),
        ]
    )
    db.commit()


class TestDashboardService:
    """Tests for get_dashboard_data."""

    def test_all_slices_populated(self, dashboard, seeded, clock):
        data = dashboard.get_dashboard_data("user-1")

        assert data.degraded == []
        assert data.generated_at == clock()
        assert data.market_overview.btc_dominance == Decimal("51.23")
        assert [c.coin_id for c in data.top_cryptos] == ["bitcoin", "ethereum", "solana"]
        assert [c.coin_id for c in data.gainers_losers.gainers][:1] == ["solana"]
        assert data.latest_news[0].title == "Markets up"
        assert data.portfolio_summary.total_value == Decimal("80000")
        assert [h.coin_id for h in data.top_holdings] == ["bitcoin", "ethereum"]
        assert len(data.asset_allocation) == 2
        assert len(data.recent_transactions) == 1

    def test_failing_slice_gets_default(self, dashboard, seeded, news_client):
        news_client.error = HTTPClientError("news down", reason=FailureReason.NETWORK)

        data = dashboard.get_dashboard_data("user-1")

        assert data.latest_news == []
        assert data.degraded == ["latest_news"]
        assert data.portfolio_summary.total_value == Decimal("80000")

    def test_unexpected_error_isolated(self, dashboard, seeded):
        with patch.object(dashboard, "_recent_transactions", side_effect=RuntimeError("db gone")):
            data = dashboard.get_dashboard_data("user-1")

        assert data.recent_transactions == []
        assert "recent_transactions" in data.degraded
        assert len(data.top_holdings) == 2

    def test_fallback_market_data_marked_degraded(self, dashboard, seeded, coingecko):
        coingecko.error = HTTPClientError("down", reason=FailureReason.TIMEOUT)

        data = dashboard.get_dashboard_data("user-1")

        assert data.market_overview.total_market_cap == Decimal("2345678901234")
        assert len(data.top_cryptos) == 8
        for name in ("market_overview", "top_cryptos", "trending_coins", "gainers_losers"):
            assert name in data.degraded

    def test_result_cached_per_user(self, dashboard, seeded, coingecko, clock):
        first = dashboard.get_dashboard_data("user-1")
        calls = len(coingecko.calls)

        assert dashboard.get_dashboard_data("user-1") is first
        assert len(coingecko.calls) == calls

        clock.advance(seconds=301)
        assert dashboard.get_dashboard_data("user-1") is not first

    def test_invalidate(self, dashboard, seeded):
        first = dashboard.get_dashboard_data("user-1")
        dashboard.invalidate("user-1")
        assert dashboard.get_dashboard_data("user-1") is not first

    def test_empty_user(self, dashboard, seeded):
        data = dashboard.get_dashboard_data("new-user")

        assert data.portfolio_summary.total_value == 0
        assert data.top_holdings == []
        assert data.recent_transactions == []


class TestSharedCache:
    """The market gateway and the dashboard read and write one cache."""

    def test_rebuilt_dashboard_reuses_gateway_entries(
        self, session_factory, gateway, market_cache, news_client, clock, seeded, coingecko
    ):
        dashboard = DashboardService(
            session_factory=session_factory,
            gateway=gateway,
            news_client=news_client,
            cache=market_cache,
            clock=clock,
            max_workers=1,
        )
        dashboard.get_dashboard_data("user-1")
        provider_calls = len(coingecko.calls)

        dashboard.invalidate("user-1")
        data = dashboard.get_dashboard_data("user-1")

        assert len(coingecko.calls) == provider_calls
        assert data.portfolio_summary.total_value == Decimal("80000")
        assert DashboardService.cache_key("user-1") in market_cache

    def test_default_wiring_shares_one_cache(self):
        assert get_market_gateway()._cache is get_cache()
        assert get_dashboard_service()._cache is get_cache()
