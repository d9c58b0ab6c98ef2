"""Pydantic schemas for staking endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class StakingPlan(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    apy: Decimal
    lock_period_days: int
    minimum_amount: Decimal
    maximum_amount: Decimal | None = None
    supported_coins: list[str]
    is_active: bool


class StakingPositionCreate(BaseModel):
    plan_id: int
    coin_id: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)


class WithdrawRequest(BaseModel):
    early_withdrawal: bool = False


class StakingPosition(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    staking_plan_id: int
    coin_id: str
    amount: Decimal
    start_date: datetime
    end_date: datetime | None = None
    total_rewards: Decimal
    last_reward_date: datetime | None = None
    status: str
    withdrawn_at: datetime | None = None
    payout_amount: Decimal | None = None
    penalty_amount: Decimal | None = None
    plan: StakingPlan


class PositionDetails(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: StakingPosition
    coin_name: str
    coin_symbol: str
    current_value: Decimal | None = None
    projected_annual_reward: Decimal
    days_remaining: int
    can_withdraw: bool
    early_withdrawal_penalty: Decimal


class StakingSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_staked: Decimal
    total_rewards: Decimal
    active_positions: int
    projected_annual_income: Decimal
    average_apy: Decimal


class WithdrawalResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: StakingPosition
    principal: Decimal
    rewards: Decimal
    penalty: Decimal
    payout: Decimal
    early: bool


class AccrualRunResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    updated: int
    errors: int
    rewarded: Decimal


class StakingOverview(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plans: list[StakingPlan]
    positions: list[PositionDetails]
    summary: StakingSummary


class StakingReward(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staking_position_id: int
    amount: Decimal
    reward_date: datetime
    apy_rate: Decimal
    principal: Decimal
    elapsed_seconds: int
