"""Pydantic schemas for ledger transactions."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TransactionCreate(BaseModel):
    """Schema for recording a transaction."""

    type: Literal["buy", "sell", "transfer"]
    coin_id: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=20)
    name: str | None = Field(None, max_length=100)
    quantity: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)
    fee: Decimal = Field(Decimal("0"), ge=0)
    note: str | None = None
    portfolio_id: str | None = None
    transaction_date: datetime | None = None


class Transaction(BaseModel):
    """Schema for Transaction responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    portfolio_id: str | None = None
    holding_id: int | None = None
    type: str
    coin_id: str
    symbol: str
    quantity: Decimal
    price: Decimal
    fee: Decimal
    total_amount: Decimal
    note: str | None = None
    transaction_date: datetime


class CsvImportResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    imported: int
    failed: int
    errors: list[str] = []
