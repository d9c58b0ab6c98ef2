"""Dashboard API router."""

from fastapi import APIRouter, Depends

from coinfolio.dependencies.services import get_dashboard_service
from coinfolio.dependencies.user_scope import get_current_user_id
from coinfolio.schemas.dashboard import DashboardData
from coinfolio.services.dashboard import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardData)
def get_dashboard(
    user_id: str = Depends(get_current_user_id),
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> DashboardData:
    """
    Get the aggregated dashboard for the caller.

    Returns market overview, top and trending coins, gainers/losers, news,
    portfolio summary, top holdings, allocation and recent transactions.
    Slices that could not be loaded are listed in ``degraded``.
    """
    return DashboardData.model_validate(dashboard.get_dashboard_data(user_id))
