"""Pydantic schemas for market data endpoints."""

from decimal import Decimal
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class CoinSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    coin_id: str
    symbol: str
    name: str
    current_price: Decimal
    market_cap: Decimal
    total_volume: Decimal
    price_change_percentage_24h: Decimal
    market_cap_rank: int | None = None
    image: str | None = None


class MarketSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_market_cap: Decimal
    total_volume: Decimal
    btc_dominance: Decimal
    eth_dominance: Decimal


class CoinDetail(CoinSnapshot):
    description: str = ""
    homepage: str | None = None
    circulating_supply: Decimal | None = None
    total_supply: Decimal | None = None


class GainersLosers(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gainers: list[CoinSnapshot]
    losers: list[CoinSnapshot]


class MarketResponse(BaseModel, Generic[T]):
    """Market payload plus whether it is placeholder data."""

    data: T
    is_fallback: bool
    reason: str | None = None
