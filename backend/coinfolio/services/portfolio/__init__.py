"""Portfolio services: ledger, valuation and performance snapshots."""

from .ledger_service import LedgerService
from .snapshot_service import SnapshotService
from .valuation_service import PortfolioValuationService

__all__ = [
    "LedgerService",
    "PortfolioValuationService",
    "SnapshotService",
]
