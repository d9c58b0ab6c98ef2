"""SQLAlchemy ORM models."""

from coinfolio.models.holding import Holding
from coinfolio.models.portfolio import Portfolio
from coinfolio.models.portfolio_snapshot import PortfolioSnapshot
from coinfolio.models.staking_plan import StakingPlan
from coinfolio.models.staking_position import StakingPosition
from coinfolio.models.staking_reward import StakingReward
from coinfolio.models.transaction import Transaction

__all__ = [
    "Holding",
    "Portfolio",
    "PortfolioSnapshot",
    "StakingPlan",
    "StakingPosition",
    "StakingReward",
    "Transaction",
]
