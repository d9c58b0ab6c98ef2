"""Staking plan model - rate, lock period and limits offered to stakers."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from coinfolio.database import Base


class StakingPlan(Base):
    """Staking plan. A lock period of 0 days means flexible staking."""

    __tablename__ = "staking_plans"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text)
    apy: Mapped[Decimal] = mapped_column(Numeric(10, 4))
    lock_period_days: Mapped[int] = mapped_column(default=0)
    minimum_amount: Mapped[Decimal] = mapped_column(Numeric(28, 10), default=Decimal("0"))
    maximum_amount: Mapped[Decimal | None] = mapped_column(Numeric(28, 10))
    supported_coins: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    def supports(self, coin_id: str) -> bool:
        return coin_id in (self.supported_coins or [])

    def __repr__(self) -> str:
        return f"<StakingPlan(id={self.id}, name='{self.name}', apy={self.apy}, lock={self.lock_period_days}d)>"
