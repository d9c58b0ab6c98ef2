"""Portfolio snapshot model - periodic valuation records."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from coinfolio.database import Base


class PortfolioSnapshot(Base):
    """Point-in-time valuation of a user's holdings (optionally one portfolio)."""

    __tablename__ = "portfolio_snapshots"
    __table_args__ = (Index("idx_snapshots_user_date", "user_id", "snapshot_date"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(36))
    portfolio_id: Mapped[str | None] = mapped_column(
        ForeignKey("portfolios.id", ondelete="CASCADE")
    )
    total_value: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    total_cost: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    profit_loss: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    profit_percentage: Mapped[Decimal] = mapped_column(Numeric(20, 10))
    snapshot_date: Mapped[datetime]

    def __repr__(self) -> str:
        return f"<PortfolioSnapshot(user_id='{self.user_id}', date={self.snapshot_date}, value={self.total_value})>"
