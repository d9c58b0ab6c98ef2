"""Transaction data access layer.

The ledger is append-only: this repository offers no update or
delete operations.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from coinfolio.models import Transaction

if TYPE_CHECKING:
    from collections.abc import Sequence


class TransactionRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, transaction: Transaction) -> Transaction:
        self._db.add(transaction)
        self._db.flush()
        return transaction

    def find_by_user(
        self,
        user_id: str,
        *,
        portfolio_id: str | None = None,
        limit: int | None = None,
    ) -> "Sequence[Transaction]":
        """Find a user's transactions, newest first."""
        query = self._db.query(Transaction).filter(Transaction.user_id == user_id)
        if portfolio_id:
            query = query.filter(Transaction.portfolio_id == portfolio_id)
        query = query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()
