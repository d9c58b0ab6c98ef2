"""Staking reward model - append-only accrual ledger."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coinfolio.database import Base


class StakingReward(Base):
    """One accrual event, with the principal, rate and elapsed time it was computed from."""

    __tablename__ = "staking_rewards"
    __table_args__ = (Index("idx_staking_rewards_position", "staking_position_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    staking_position_id: Mapped[int] = mapped_column(
        ForeignKey("staking_positions.id", ondelete="CASCADE")
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    reward_date: Mapped[datetime]
    apy_rate: Mapped[Decimal] = mapped_column(Numeric(10, 4))
    principal: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    elapsed_seconds: Mapped[int]

    # Relationships
    position: Mapped["StakingPosition"] = relationship(back_populates="rewards")  # noqa: F821

    def __repr__(self) -> str:
        return f"<StakingReward(position={self.staking_position_id}, amount={self.amount}, date={self.reward_date})>"
