"""Portfolio performance snapshots.

Snapshots are captured on demand (API) or on a schedule (Airflow DAG) and
back the historical performance series.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coinfolio.config import settings
from coinfolio.models import PortfolioSnapshot
from coinfolio.services.exceptions import UpstreamUnavailable
from coinfolio.services.portfolio import metrics, valuation
from coinfolio.services.portfolio.valuation_service import PortfolioValuationService
from coinfolio.services.portfolio.valuation_types import PortfolioMetrics
from coinfolio.services.repositories import PortfolioRepository, SnapshotRepository
from coinfolio.services.shared.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class PerformanceRange(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ALL = "all"


RANGE_WINDOWS: dict[PerformanceRange, timedelta | None] = {
    PerformanceRange.DAILY: timedelta(days=1),
    PerformanceRange.WEEKLY: timedelta(days=7),
    PerformanceRange.MONTHLY: timedelta(days=30),
    PerformanceRange.YEARLY: timedelta(days=365),
    PerformanceRange.ALL: None,
}


@dataclass
class PerformancePoint:
    date: datetime
    value: Decimal
    cost: Decimal
    profit_loss: Decimal


@dataclass
class PerformanceSeries:
    range: PerformanceRange
    points: list[PerformancePoint]
    change: Decimal | None
    change_percentage: Decimal | None


class SnapshotService:
    def __init__(self, db: Session, valuation_service: PortfolioValuationService, clock: Clock = utc_now):
        self._db = db
        self._valuation = valuation_service
        self._clock = clock
        self._snapshots = SnapshotRepository(db)
        self._portfolios = PortfolioRepository(db)

    def capture_snapshot(self, user_id: str, portfolio_id: str | None = None) -> PortfolioSnapshot:
        """Value the user's holdings now and persist the result.

        At most one snapshot is kept per UTC day; a repeat capture returns the
        day's existing snapshot.
        """
        snapshot, _ = self._capture(user_id, portfolio_id)
        return snapshot

    def _capture(self, user_id: str, portfolio_id: str | None) -> tuple[PortfolioSnapshot, bool]:
        if portfolio_id:
            self._portfolios.get_portfolio(user_id, portfolio_id)

        now = self._clock()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        existing = self._snapshots.find_in_window(
            user_id, day_start, day_start + timedelta(days=1), portfolio_id
        )
        if existing is not None:
            logger.debug(f"Snapshot for {user_id} already taken on {day_start.date()}")
            return existing, False

        summary = valuation.valuate(self._valuation.get_holdings(user_id, portfolio_id))
        snapshot = PortfolioSnapshot(
            user_id=user_id,
            portfolio_id=portfolio_id,
            total_value=summary.total_value,
            total_cost=summary.total_cost,
            profit_loss=summary.total_profit,
            profit_percentage=summary.profit_percentage,
            snapshot_date=now,
        )
        try:
            self._snapshots.add(snapshot)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Failed to store snapshot for {user_id}: {e}")
            raise UpstreamUnavailable("Could not save snapshot") from e

        logger.info(f"Captured snapshot for {user_id}: value={summary.total_value}")
        return snapshot, True

    def capture_all(self) -> int:
        """Snapshot every user that has holdings.

        Returns the number of new snapshots; users already captured today are
        skipped.
        """
        captured = 0
        for user_id in self._portfolios.find_user_ids_with_holdings():
            try:
                _, created = self._capture(user_id, None)
            except UpstreamUnavailable as e:
                logger.error(f"Snapshot failed for {user_id}: {e}")
                continue
            if created:
                captured += 1
        return captured

    def cleanup_old_snapshots(self, retention_days: int | None = None) -> int:
        """Delete snapshots older than the retention window. Returns the count removed."""
        days = settings.snapshot_retention_days if retention_days is None else retention_days
        cutoff = self._clock() - timedelta(days=days)
        try:
            deleted = self._snapshots.delete_before(cutoff)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Snapshot cleanup failed: {e}")
            raise UpstreamUnavailable("Could not clean up snapshots") from e

        logger.info(f"Deleted {deleted} snapshots older than {cutoff.date()}")
        return deleted

    def get_metrics(self, user_id: str, portfolio_id: str | None = None) -> PortfolioMetrics:
        """Return and risk figures over every stored snapshot, oldest first."""
        if portfolio_id:
            self._portfolios.get_portfolio(user_id, portfolio_id)
        values = [s.total_value for s in self._snapshots.find_range(user_id, portfolio_id)]
        return metrics.performance_metrics(values, settings.risk_free_rate_pct)

    def get_performance(
        self,
        user_id: str,
        range: PerformanceRange = PerformanceRange.MONTHLY,
        portfolio_id: str | None = None,
    ) -> PerformanceSeries:
        """Stored snapshots inside the range, oldest first, ending with a live point."""
        now = self._clock()
        window = RANGE_WINDOWS[range]
        start = now - window if window is not None else None

        points = [
            PerformancePoint(
                date=s.snapshot_date,
                value=s.total_value,
                cost=s.total_cost,
                profit_loss=s.profit_loss,
            )
            for s in self._snapshots.find_range(user_id, portfolio_id, start=start, end=now)
        ]

        current = valuation.valuate(self._valuation.get_holdings(user_id, portfolio_id))
        points.append(
            PerformancePoint(
                date=now,
                value=current.total_value,
                cost=current.total_cost,
                profit_loss=current.total_profit,
            )
        )

        first = points[0].value
        change = current.total_value - first if len(points) > 1 else None
        return PerformanceSeries(
            range=range,
            points=points,
            change=change,
            change_percentage=valuation.percent_change(current.total_value, first)
            if change is not None
            else None,
        )
