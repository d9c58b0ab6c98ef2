"""Dashboard aggregation across market, news, portfolio and ledger data."""

from .dashboard_service import DashboardData, DashboardService

__all__ = ["DashboardData", "DashboardService"]
