"""Pydantic schemas for live price endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class LivePrice(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    price: Decimal
    change_24h: Decimal | None = None
    timestamp: datetime


class SymbolSubscription(BaseModel):
    symbol: str
    subscribers: int


class PriceStreamStatus(BaseModel):
    connected: bool
    subscriptions: list[SymbolSubscription]
