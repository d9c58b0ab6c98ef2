"""Holding model - represents a coin position inside a portfolio."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from coinfolio.database import Base


class Holding(Base):
    """Holding model. Quantity and average buy price are maintained by the ledger."""

    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "coin_id", name="uq_holding_portfolio_coin"),
        Index("idx_holdings_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[str] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"))
    user_id: Mapped[str] = mapped_column(String(36))
    coin_id: Mapped[str] = mapped_column(String(100))  # CoinGecko id, e.g. 'bitcoin'
    symbol: Mapped[str] = mapped_column(String(20))
    name: Mapped[str | None] = mapped_column(String(100))
    quantity: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    average_buy_price: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    # Relationships
    portfolio: Mapped["Portfolio"] = relationship(back_populates="holdings")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Holding(id={self.id}, coin_id='{self.coin_id}', quantity={self.quantity})>"
