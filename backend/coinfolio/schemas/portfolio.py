"""Pydantic schemas for portfolios, valuations and snapshots."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PortfolioCreate(BaseModel):
    """Schema for creating a new Portfolio."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    is_public: bool = False


class Portfolio(BaseModel):
    """Schema for Portfolio responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    description: str | None = None
    is_public: bool = False
    created_at: datetime | None = None


class HoldingValue(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    holding_id: int
    portfolio_id: str
    coin_id: str
    symbol: str
    name: str
    quantity: Decimal
    average_buy_price: Decimal
    current_price: Decimal
    value: Decimal
    cost: Decimal
    profit: Decimal
    profit_percentage: Decimal


class PortfolioSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_value: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_percentage: Decimal
    holdings_count: int = 0
    daily_change: Decimal | None = None
    weekly_change: Decimal | None = None
    monthly_change: Decimal | None = None
    all_time_high: Decimal | None = None
    all_time_low: Decimal | None = None


class AssetAllocation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    coin_id: str
    name: str
    symbol: str
    value: Decimal
    percentage: Decimal


class PortfolioSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    portfolio_id: str | None = None
    total_value: Decimal
    total_cost: Decimal
    profit_loss: Decimal
    profit_percentage: Decimal
    snapshot_date: datetime


class PerformancePoint(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: datetime
    value: Decimal
    cost: Decimal
    profit_loss: Decimal


class PerformanceSeries(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    range: str
    points: list[PerformancePoint]
    change: Decimal | None = None
    change_percentage: Decimal | None = None


class HoldingUpdate(BaseModel):
    """Schema for editing a holding directly."""

    quantity: Decimal = Field(..., gt=0)
    average_buy_price: Decimal = Field(..., gt=0)


class Holding(BaseModel):
    """Schema for stored Holding responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    portfolio_id: str
    coin_id: str
    symbol: str
    name: str | None = None
    quantity: Decimal
    average_buy_price: Decimal


class PortfolioMetrics(BaseModel):
    """Return and risk figures in percent; ``sharpe_ratio`` is a plain ratio."""

    model_config = ConfigDict(from_attributes=True)

    total_return: Decimal
    annualized_return: Decimal
    volatility: Decimal
    sharpe_ratio: Decimal
    max_drawdown: Decimal
    snapshot_count: int = 0
