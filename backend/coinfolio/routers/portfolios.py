"""Portfolios API router - portfolios, holdings and allocation."""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status

from coinfolio.dependencies.services import (
    get_dashboard_service,
    get_ledger_service,
    get_valuation_service,
)
from coinfolio.dependencies.user_scope import get_current_user_id
from coinfolio.schemas.portfolio import (
    AssetAllocation,
    Holding,
    HoldingUpdate,
    HoldingValue,
    Portfolio,
    PortfolioCreate,
    PortfolioSummary,
)
from coinfolio.schemas.transaction import Transaction
from coinfolio.services.dashboard import DashboardService
from coinfolio.services.portfolio import LedgerService, PortfolioValuationService

router = APIRouter(prefix="/api/portfolios", tags=["portfolios"])


@router.get("", response_model=list[Portfolio])
def list_portfolios(
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    return [Portfolio.model_validate(p) for p in ledger.list_portfolios(user_id)]


@router.post("", response_model=Portfolio, status_code=status.HTTP_201_CREATED)
def create_portfolio(
    payload: PortfolioCreate,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    portfolio = ledger.create_portfolio(
        user_id, payload.name, payload.description, payload.is_public
    )
    return Portfolio.model_validate(portfolio)


@router.get("/holdings", response_model=list[HoldingValue])
def get_holdings(
    portfolio_id: str | None = Query(None, description="Filter by portfolio ID"),
    user_id: str = Depends(get_current_user_id),
    valuation: PortfolioValuationService = Depends(get_valuation_service),
):
    """Holdings valued at current prices. Coins without a price are omitted."""
    return [HoldingValue.model_validate(h) for h in valuation.get_holdings(user_id, portfolio_id)]


@router.get("/summary", response_model=PortfolioSummary)
def get_summary(
    portfolio_id: str | None = Query(None, description="Filter by portfolio ID"),
    user_id: str = Depends(get_current_user_id),
    valuation: PortfolioValuationService = Depends(get_valuation_service),
):
    return PortfolioSummary.model_validate(valuation.get_summary(user_id, portfolio_id))


@router.get("/allocation", response_model=list[AssetAllocation])
def get_allocation(
    portfolio_id: str | None = Query(None, description="Filter by portfolio ID"),
    user_id: str = Depends(get_current_user_id),
    valuation: PortfolioValuationService = Depends(get_valuation_service),
):
    return [
        AssetAllocation.model_validate(a) for a in valuation.get_allocation(user_id, portfolio_id)
    ]


@router.patch("/holdings/{holding_id}", response_model=Holding)
def update_holding(
    holding_id: int,
    payload: HoldingUpdate,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """Set a holding's quantity and average buy price.

    A quantity change is recorded in the ledger as an adjustment buy or sell.
    """
    holding = ledger.update_holding(
        user_id, holding_id, payload.quantity, payload.average_buy_price
    )
    dashboard.invalidate(user_id)
    return Holding.model_validate(holding)


@router.delete("/holdings/{holding_id}", response_model=Transaction)
def delete_holding(
    holding_id: int,
    price: Decimal | None = Query(
        None, ge=0, description="Sale price; defaults to the average buy price"
    ),
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """Remove a holding, returning the sell transaction that closes it."""
    transaction = ledger.delete_holding(user_id, holding_id, price)
    dashboard.invalidate(user_id)
    return Transaction.model_validate(transaction)
