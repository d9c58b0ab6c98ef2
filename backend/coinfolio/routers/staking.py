"""Staking API router - plans, positions, rewards and withdrawals."""

import logging

from fastapi import APIRouter, Depends, Query, Request, status

from coinfolio.dependencies.services import get_staking_service
from coinfolio.dependencies.user_scope import get_current_user_id
from coinfolio.rate_limiter import limiter
from coinfolio.schemas.common import ErrorResponse
from coinfolio.schemas.staking import (
    AccrualRunResult,
    PositionDetails,
    StakingOverview,
    StakingPlan,
    StakingPosition,
    StakingPositionCreate,
    StakingReward,
    StakingSummary,
    WithdrawalResult,
    WithdrawRequest,
)
from coinfolio.services.staking import StakingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/staking", tags=["staking"])

POSITION_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    423: {"model": ErrorResponse},
}


@router.get("", response_model=StakingOverview)
def load_staking_data(
    user_id: str = Depends(get_current_user_id),
    staking: StakingService = Depends(get_staking_service),
):
    """Plans, the caller's positions with details, and the caller's summary."""
    return StakingOverview.model_validate(staking.load_staking_data(user_id))


@router.get("/plans", response_model=list[StakingPlan])
def list_plans(staking: StakingService = Depends(get_staking_service)):
    return [StakingPlan.model_validate(p) for p in staking.list_plans()]


@router.get("/positions", response_model=list[PositionDetails])
def list_positions(
    user_id: str = Depends(get_current_user_id),
    staking: StakingService = Depends(get_staking_service),
):
    return [PositionDetails.model_validate(p) for p in staking.get_positions_with_details(user_id)]


@router.post(
    "/positions",
    response_model=StakingPosition,
    status_code=status.HTTP_201_CREATED,
    responses=POSITION_ERRORS,
)
@limiter.limit("30/minute")
def create_position(
    request: Request,
    payload: StakingPositionCreate,
    user_id: str = Depends(get_current_user_id),
    staking: StakingService = Depends(get_staking_service),
):
    position = staking.create_position(user_id, payload.plan_id, payload.coin_id, payload.amount)
    return StakingPosition.model_validate(position)


@router.post(
    "/positions/{position_id}/withdraw", response_model=WithdrawalResult, responses=POSITION_ERRORS
)
@limiter.limit("30/minute")
def withdraw_position(
    request: Request,
    position_id: int,
    payload: WithdrawRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    staking: StakingService = Depends(get_staking_service),
):
    """
    Withdraw a position in full.

    Locked positions need ``early_withdrawal: true`` and incur the early
    withdrawal penalty.
    """
    early = payload.early_withdrawal if payload else False
    return WithdrawalResult.model_validate(staking.withdraw(user_id, position_id, early))


@router.get(
    "/positions/{position_id}/rewards",
    response_model=list[StakingReward],
    responses={404: {"model": ErrorResponse}},
)
def list_rewards(
    position_id: int,
    user_id: str = Depends(get_current_user_id),
    staking: StakingService = Depends(get_staking_service),
):
    """Reward accrual history of one of the caller's positions, oldest first."""
    return [StakingReward.model_validate(r) for r in staking.get_rewards(user_id, position_id)]


@router.post("/update-rewards", response_model=AccrualRunResult)
def update_rewards(staking: StakingService = Depends(get_staking_service)):
    """Accrue rewards for every active position (scheduler entry point)."""
    return AccrualRunResult.model_validate(staking.accrue_all_active())


@router.get("/summary", response_model=StakingSummary)
def get_summary(
    user_id: str = Depends(get_current_user_id),
    staking: StakingService = Depends(get_staking_service),
    refresh: bool = Query(False, description="Accrue the caller's active positions first"),
):
    if refresh:
        for position in staking.get_positions(user_id):
            if position.is_active:
                staking.accrue(position.id)
    return StakingSummary.model_validate(staking.summarize(user_id))
