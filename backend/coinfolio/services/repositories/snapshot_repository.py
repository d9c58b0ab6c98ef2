"""Portfolio snapshot data access layer."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from coinfolio.models import PortfolioSnapshot

if TYPE_CHECKING:
    from collections.abc import Sequence


class SnapshotRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, snapshot: PortfolioSnapshot) -> PortfolioSnapshot:
        self._db.add(snapshot)
        self._db.flush()
        return snapshot

    def _scoped(self, user_id: str, portfolio_id: str | None):
        query = self._db.query(PortfolioSnapshot).filter(PortfolioSnapshot.user_id == user_id)
        if portfolio_id:
            return query.filter(PortfolioSnapshot.portfolio_id == portfolio_id)
        return query.filter(PortfolioSnapshot.portfolio_id.is_(None))

    def find_range(
        self,
        user_id: str,
        portfolio_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> "Sequence[PortfolioSnapshot]":
        """Find snapshots in [start, end], oldest first."""
        query = self._scoped(user_id, portfolio_id)
        if start is not None:
            query = query.filter(PortfolioSnapshot.snapshot_date >= start)
        if end is not None:
            query = query.filter(PortfolioSnapshot.snapshot_date <= end)
        return query.order_by(PortfolioSnapshot.snapshot_date.asc()).all()

    def find_latest_before(
        self, user_id: str, at: datetime, portfolio_id: str | None = None
    ) -> PortfolioSnapshot | None:
        """Find the most recent snapshot taken at or before ``at``."""
        return (
            self._scoped(user_id, portfolio_id)
            .filter(PortfolioSnapshot.snapshot_date <= at)
            .order_by(PortfolioSnapshot.snapshot_date.desc())
            .first()
        )

    def find_in_window(
        self, user_id: str, start: datetime, end: datetime, portfolio_id: str | None = None
    ) -> PortfolioSnapshot | None:
        """Find the earliest snapshot taken in [start, end)."""
        return (
            self._scoped(user_id, portfolio_id)
            .filter(PortfolioSnapshot.snapshot_date >= start, PortfolioSnapshot.snapshot_date < end)
            .order_by(PortfolioSnapshot.snapshot_date.asc())
            .first()
        )

    def delete_before(self, cutoff: datetime) -> int:
        """Delete every snapshot taken before ``cutoff``. Returns the number deleted."""
        return (
            self._db.query(PortfolioSnapshot)
            .filter(PortfolioSnapshot.snapshot_date < cutoff)
            .delete(synchronize_session=False)
        )
