"""Transactions API router - the append-only ledger and CSV import."""

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from fastapi.responses import PlainTextResponse

from coinfolio.dependencies.services import get_dashboard_service, get_ledger_service
from coinfolio.dependencies.user_scope import get_current_user_id
from coinfolio.schemas.transaction import CsvImportResult, Transaction, TransactionCreate
from coinfolio.services.dashboard import DashboardService
from coinfolio.services.portfolio import LedgerService, csv_import

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=list[Transaction])
def list_transactions(
    portfolio_id: str | None = Query(None, description="Filter by portfolio ID"),
    limit: int | None = Query(None, ge=1, le=1000),
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """The caller's transactions, newest first."""
    return [
        Transaction.model_validate(t)
        for t in ledger.list_transactions(user_id, portfolio_id=portfolio_id, limit=limit)
    ]


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def record_transaction(
    payload: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """
    Record a buy, sell or transfer.

    Buys and sells require ``portfolio_id`` and update that portfolio's holding.
    """
    transaction = ledger.record_transaction(user_id, **payload.model_dump())
    dashboard.invalidate(user_id)
    return Transaction.model_validate(transaction)


@router.get("/import/template", response_class=PlainTextResponse)
def get_import_template() -> str:
    """Example CSV accepted by the import endpoint."""
    return csv_import.TEMPLATE


@router.post("/import", response_model=CsvImportResult)
async def import_transactions(
    portfolio_id: str = Form(...),
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """Import buys from a CSV with symbol, quantity, price and date columns.

    Valid rows are recorded even when others fail; failures are listed per line.

    Raises:
        400: Empty file
        404: Portfolio not found
        422: Missing required columns
    """
    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file uploaded",
        )

    result = ledger.import_csv(user_id, portfolio_id, csv_import.decode_upload(content))
    if result.imported:
        dashboard.invalidate(user_id)
    return CsvImportResult.model_validate(result)
