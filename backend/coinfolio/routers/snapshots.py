"""Snapshots API router - portfolio valuation history."""

from fastapi import APIRouter, Depends, Query, status

from coinfolio.dependencies.services import get_snapshot_service
from coinfolio.dependencies.user_scope import get_current_user_id
from coinfolio.schemas.portfolio import PerformanceSeries, PortfolioMetrics, PortfolioSnapshot
from coinfolio.services.portfolio import SnapshotService
from coinfolio.services.portfolio.snapshot_service import PerformanceRange

router = APIRouter(prefix="/api/snapshots", tags=["snapshots"])


@router.post("", response_model=PortfolioSnapshot, status_code=status.HTTP_201_CREATED)
def capture_snapshot(
    portfolio_id: str | None = Query(None, description="Snapshot a single portfolio"),
    user_id: str = Depends(get_current_user_id),
    snapshots: SnapshotService = Depends(get_snapshot_service),
):
    """Value the caller's holdings now and store the result.

    A second capture on the same UTC day returns the existing snapshot.
    """
    return PortfolioSnapshot.model_validate(snapshots.capture_snapshot(user_id, portfolio_id))


@router.post("/all")
def capture_all_snapshots(snapshots: SnapshotService = Depends(get_snapshot_service)) -> dict:
    """Snapshot every user with holdings (scheduler entry point)."""
    captured = snapshots.capture_all()
    return {"status": "completed", "captured": captured}


@router.get("/performance", response_model=PerformanceSeries)
def get_performance(
    period: PerformanceRange = Query(PerformanceRange.MONTHLY, alias="range"),
    portfolio_id: str | None = Query(None, description="Filter by portfolio ID"),
    user_id: str = Depends(get_current_user_id),
    snapshots: SnapshotService = Depends(get_snapshot_service),
):
    """Stored snapshots for the range followed by a live valuation point."""
    return PerformanceSeries.model_validate(
        snapshots.get_performance(user_id, period, portfolio_id)
    )


@router.post("/cleanup")
def cleanup_snapshots(
    retention_days: int | None = Query(
        None, ge=1, description="Defaults to the configured retention"
    ),
    snapshots: SnapshotService = Depends(get_snapshot_service),
) -> dict:
    """Delete snapshots older than the retention window (scheduler entry point)."""
    deleted = snapshots.cleanup_old_snapshots(retention_days)
    return {"status": "completed", "deleted": deleted}


@router.get("/metrics", response_model=PortfolioMetrics)
def get_metrics(
    portfolio_id: str | None = Query(None, description="Filter by portfolio ID"),
    user_id: str = Depends(get_current_user_id),
    snapshots: SnapshotService = Depends(get_snapshot_service),
):
    """Total and annualized return, volatility, Sharpe ratio and max drawdown."""
    return PortfolioMetrics.model_validate(snapshots.get_metrics(user_id, portfolio_id))
