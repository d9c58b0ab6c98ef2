"""Tests for PortfolioValuationService and SnapshotService."""

from datetime import timedelta
from decimal import Decimal

import pytest

from coinfolio.models import Holding, Portfolio, PortfolioSnapshot
from coinfolio.services.exceptions import NotFoundError
from coinfolio.services.portfolio import PortfolioValuationService, SnapshotService
from coinfolio.services.portfolio.snapshot_service import PerformanceRange
from coinfolio.services.shared.http_client import FailureReason, HTTPClientError


@pytest.fixture
def valuation_service(db, gateway, clock):
    return PortfolioValuationService(db, gateway, clock)


@pytest.fixture
def snapshot_service(db, valuation_service, clock):
    return SnapshotService(db, valuation_service, clock)


@pytest.fixture
def holdings(db, portfolio):
    """1 BTC bought at 40000 and 10 ETH bought at 2000."""
    db.add_all(
        [
            Holding(
                portfolio_id=portfolio.id,
                user_id="user-1",
                coin_id="bitcoin",
                symbol="BTC",
                name="Bitcoin",
                quantity=Decimal("1"),
                average_buy_price=Decimal("40000"),
            ),
            Holding(
                portfolio_id=portfolio.id,
                user_id="user-1",
                coin_id="ethereum",
                symbol="ETH",
                name="Ethereum",
                quantity=Decimal("10"),
                average_buy_price=Decimal("2000"),
            ),
        ]
    )
    db.commit()


def add_snapshot(db, when, value, user_id="user-1"):
    db.add(
        PortfolioSnapshot(
            user_id=user_id,
            total_value=Decimal(value),
            total_cost=Decimal("60000"),
            profit_loss=Decimal(value) - Decimal("60000"),
            profit_percentage=Decimal("0"),
            snapshot_date=when,
        )
    )
    db.commit()


class TestPortfolioValuationService:
    """Tests for live valuation of stored holdings."""

    def test_get_holdings(self, valuation_service, holdings):
        valued = {h.coin_id: h for h in valuation_service.get_holdings("user-1")}

        assert valued["bitcoin"].value == Decimal("50000")
        assert valued["ethereum"].value == Decimal("30000")
        assert valued["ethereum"].profit == Decimal("10000")

    def test_get_holdings_single_price_lookup(self, valuation_service, holdings, coingecko):
        valuation_service.get_holdings("user-1")
        assert coingecko.calls == ["get_simple_prices"]

    def test_unpriced_coin_omitted(self, valuation_service, holdings, coingecko):
        del coingecko.prices["ethereum"]

        valued = valuation_service.get_holdings("user-1")

        assert [h.coin_id for h in valued] == ["bitcoin"]

    def test_summary(self, valuation_service, holdings):
        summary = valuation_service.get_summary("user-1")

        assert summary.total_value == Decimal("80000")
        assert summary.total_cost == Decimal("60000")
        assert summary.total_profit == Decimal("20000")
        assert summary.holdings_count == 2
        assert summary.daily_change is None
        assert summary.all_time_high is None

    def test_summary_period_changes_from_snapshots(self, valuation_service, holdings, db, clock):
        add_snapshot(db, clock() - timedelta(days=2), "64000")
        add_snapshot(db, clock() - timedelta(days=8), "100000")

        summary = valuation_service.get_summary("user-1")

        assert summary.daily_change == Decimal("25")  # 64000 -> 80000
        assert summary.weekly_change == Decimal("-20")  # 100000 -> 80000
        assert summary.monthly_change is None
        assert summary.all_time_high == Decimal("100000")
        assert summary.all_time_low == Decimal("64000")

    def test_summary_empty_user(self, valuation_service):
        summary = valuation_service.get_summary("nobody")
        assert summary.total_value == 0
        assert summary.holdings_count == 0

    def test_fallback_prices_used_when_provider_down(self, valuation_service, holdings, coingecko):
        """Known coins are valued from the fallback table."""
        coingecko.error = HTTPClientError("down", reason=FailureReason.NETWORK)

        valued = {h.coin_id: h for h in valuation_service.get_holdings("user-1")}

        assert valued["bitcoin"].current_price == Decimal("35938.21")
        assert valued["ethereum"].current_price == Decimal("2341.23")

    def test_allocation(self, valuation_service, holdings):
        allocation = {a.coin_id: a.percentage for a in valuation_service.get_allocation("user-1")}

        assert allocation["bitcoin"] == Decimal("62.5")
        assert allocation["ethereum"] == Decimal("37.5")


class TestSnapshotService:
    """Tests for snapshot capture and performance series."""

    def test_capture_snapshot(self, snapshot_service, holdings, db, clock):
        snapshot = snapshot_service.capture_snapshot("user-1")

        assert snapshot.id is not None
        assert snapshot.total_value == Decimal("80000")
        assert snapshot.profit_loss == Decimal("20000")
        assert snapshot.snapshot_date == clock()
        assert snapshot.portfolio_id is None

    def test_capture_snapshot_for_portfolio(self, snapshot_service, holdings, portfolio):
        snapshot = snapshot_service.capture_snapshot("user-1", portfolio.id)
        assert snapshot.portfolio_id == portfolio.id

    def test_capture_snapshot_foreign_portfolio(self, snapshot_service, db):
        other = Portfolio(user_id="user-2", name="Theirs")
        db.add(other)
        db.commit()

        with pytest.raises(NotFoundError):
            snapshot_service.capture_snapshot("user-1", other.id)

    def test_capture_all(self, snapshot_service, holdings, db):
        other = Portfolio(user_id="user-2", name="Other")
        db.add(other)
        db.flush()
        db.add(
            Holding(
                portfolio_id=other.id,
                user_id="user-2",
                coin_id="bitcoin",
                symbol="BTC",
                quantity=Decimal("0.25"),
                average_buy_price=Decimal("20000"),
            )
        )
        db.commit()

        assert snapshot_service.capture_all() == 2
        assert db.query(PortfolioSnapshot).count() == 2

    def test_performance_series(self, snapshot_service, holdings, db, clock):
        add_snapshot(db, clock() - timedelta(days=40), "10000")  # outside the monthly window
        add_snapshot(db, clock() - timedelta(days=20), "64000")
        add_snapshot(db, clock() - timedelta(days=5), "72000")

        series = snapshot_service.get_performance("user-1", PerformanceRange.MONTHLY)

        assert [p.value for p in series.points] == [
            Decimal("64000"),
            Decimal("72000"),
            Decimal("80000"),
        ]
        assert series.points[-1].date == clock()
        assert series.change == Decimal("16000")
        assert series.change_percentage == Decimal("25")

    def test_performance_all_range(self, snapshot_service, holdings, db, clock):
        add_snapshot(db, clock() - timedelta(days=400), "40000")

        series = snapshot_service.get_performance("user-1", PerformanceRange.ALL)

        assert len(series.points) == 2
        assert series.change_percentage == Decimal("100")

    def test_performance_without_history(self, snapshot_service, holdings):
        series = snapshot_service.get_performance("user-1", PerformanceRange.DAILY)

        assert len(series.points) == 1
        assert series.change is None
        assert series.change_percentage is None

    def test_second_capture_same_day_returns_existing(self, snapshot_service, holdings, db, clock):
        """One snapshot per UTC day and scope."""
        first = snapshot_service.capture_snapshot("user-1")
        clock.advance(hours=6)

        again = snapshot_service.capture_snapshot("user-1")

        assert again.id == first.id
        assert db.query(PortfolioSnapshot).count() == 1

    def test_capture_next_day_adds_snapshot(self, snapshot_service, holdings, db, clock):
        snapshot_service.capture_snapshot("user-1")
        clock.advance(hours=12)  # Past midnight

        snapshot_service.capture_snapshot("user-1")

        assert db.query(PortfolioSnapshot).count() == 2

    def test_portfolio_snapshot_not_deduped_against_overall(
        self, snapshot_service, holdings, portfolio, db
    ):
        snapshot_service.capture_snapshot("user-1")
        snapshot_service.capture_snapshot("user-1", portfolio.id)

        assert db.query(PortfolioSnapshot).count() == 2

    def test_capture_all_skips_users_captured_today(self, snapshot_service, holdings, db):
        snapshot_service.capture_snapshot("user-1")

        assert snapshot_service.capture_all() == 0
        assert db.query(PortfolioSnapshot).count() == 1


class TestSnapshotMaintenance:
    """Tests for snapshot retention and performance metrics."""

    def test_cleanup_old_snapshots(self, snapshot_service, db, clock):
        add_snapshot(db, clock() - timedelta(days=800), "1000")
        add_snapshot(db, clock() - timedelta(days=731), "2000")
        add_snapshot(db, clock() - timedelta(days=10), "3000")

        deleted = snapshot_service.cleanup_old_snapshots()

        assert deleted == 2
        remaining = db.query(PortfolioSnapshot).all()
        assert [s.total_value for s in remaining] == [Decimal("3000")]

    def test_cleanup_custom_retention(self, snapshot_service, db, clock):
        add_snapshot(db, clock() - timedelta(days=10), "3000")
        add_snapshot(db, clock() - timedelta(days=2), "3000")

        assert snapshot_service.cleanup_old_snapshots(retention_days=5) == 1

    def test_metrics(self, snapshot_service, db, clock):
        add_snapshot(db, clock() - timedelta(days=3), "100")
        add_snapshot(db, clock() - timedelta(days=2), "110")
        add_snapshot(db, clock() - timedelta(days=1), "99")

        metrics = snapshot_service.get_metrics("user-1")

        assert metrics.snapshot_count == 3
        assert metrics.total_return == Decimal("-1")
        assert metrics.max_drawdown == Decimal("10")
        assert metrics.annualized_return == Decimal("0")
        assert metrics.volatility == pytest.approx(Decimal("191.0497"), abs=Decimal("0.001"))
        assert metrics.sharpe_ratio == pytest.approx(Decimal("-0.010468"), abs=Decimal("0.00001"))

    def test_metrics_need_two_snapshots(self, snapshot_service, db, clock):
        add_snapshot(db, clock() - timedelta(days=1), "100")

        metrics = snapshot_service.get_metrics("user-1")

        assert metrics.snapshot_count == 1
        assert metrics.total_return == 0
        assert metrics.sharpe_ratio == 0

    def test_metrics_foreign_portfolio(self, snapshot_service, db):
        other = Portfolio(user_id="user-2", name="Theirs")
        db.add(other)
        db.commit()

        with pytest.raises(NotFoundError):
            snapshot_service.get_metrics("user-1", other.id)
