"""Staking lifecycle: plans, positions, reward accrual and withdrawal."""

from .staking_service import StakingService

__all__ = ["StakingService"]
