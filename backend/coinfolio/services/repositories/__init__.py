"""Repository layer - data access abstraction.

Repositories handle all database queries, providing a clean interface
for services. Services should use repositories for data access rather
than directly querying SQLAlchemy models.

Dependency direction: Services -> Repositories -> Models
"""

from .exceptions import NotFoundError, RepositoryError
from .portfolio_repository import PortfolioRepository
from .snapshot_repository import SnapshotRepository
from .staking_repository import StakingRepository
from .transaction_repository import TransactionRepository

__all__ = [
    "NotFoundError",
    "PortfolioRepository",
    "RepositoryError",
    "SnapshotRepository",
    "StakingRepository",
    "TransactionRepository",
]
