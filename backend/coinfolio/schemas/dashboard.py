"""Pydantic schema for the aggregated dashboard."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from coinfolio.schemas.market_data import CoinSnapshot, GainersLosers, MarketSummary
from coinfolio.schemas.news import NewsArticle
from coinfolio.schemas.portfolio import AssetAllocation, HoldingValue, PortfolioSummary
from coinfolio.schemas.transaction import Transaction


class DashboardData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    market_overview: MarketSummary
    top_cryptos: list[CoinSnapshot]
    trending_coins: list[CoinSnapshot]
    gainers_losers: GainersLosers
    latest_news: list[NewsArticle]
    portfolio_summary: PortfolioSummary
    top_holdings: list[HoldingValue]
    asset_allocation: list[AssetAllocation]
    recent_transactions: list[Transaction]
    generated_at: datetime
    degraded: list[str] = []
