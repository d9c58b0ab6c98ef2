"""Transaction model - append-only ledger of buys, sells and transfers."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from coinfolio.database import Base


class Transaction(Base):
    """Immutable ledger entry. Rows are inserted once and never updated."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_user_date", "user_id", "transaction_date"),
        Index("idx_transactions_holding", "holding_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(36))
    portfolio_id: Mapped[str | None] = mapped_column(
        ForeignKey("portfolios.id", ondelete="SET NULL")
    )
    # Holding rows are deleted at zero quantity; the ledger entry survives
    holding_id: Mapped[int | None] = mapped_column(ForeignKey("holdings.id", ondelete="SET NULL"))
    type: Mapped[str] = mapped_column(String(20))  # 'buy', 'sell', 'transfer'
    coin_id: Mapped[str] = mapped_column(String(100))
    symbol: Mapped[str] = mapped_column(String(20))
    quantity: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    price: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    fee: Mapped[Decimal] = mapped_column(Numeric(28, 10), default=Decimal("0"))
    note: Mapped[str | None] = mapped_column(Text)
    transaction_date: Mapped[datetime]
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    @property
    def total_amount(self) -> Decimal:
        return self.quantity * self.price

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type='{self.type}', coin_id='{self.coin_id}', quantity={self.quantity})>"
