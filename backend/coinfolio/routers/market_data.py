"""Market data API router - listings, global stats and news."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from coinfolio.dependencies.services import get_market_gateway, get_news_client
from coinfolio.schemas.market_data import (
    CoinDetail,
    CoinSnapshot,
    GainersLosers,
    MarketResponse,
    MarketSummary,
)
from coinfolio.schemas.news import NewsArticle
from coinfolio.services.market_data import MarketDataGateway, MarketResult
from coinfolio.services.news.news_client import NewsClient
from coinfolio.services.shared.http_client import HTTPClientError

router = APIRouter(prefix="/api/market", tags=["market"])


def _respond(result: MarketResult, schema: type) -> MarketResponse:
    return MarketResponse[schema].model_validate(
        {"data": result.data, "is_fallback": result.is_fallback, "reason": result.reason},
        from_attributes=True,
    )


@router.get("/top", response_model=MarketResponse[list[CoinSnapshot]])
def get_top_coins(
    limit: int = Query(50, ge=1, le=250),
    currency: str = Query("usd", min_length=3, max_length=5),
    gateway: MarketDataGateway = Depends(get_market_gateway),
):
    """Top coins by market cap."""
    return _respond(gateway.get_top_coins(limit, currency.lower()), list[CoinSnapshot])


@router.get("/summary", response_model=MarketResponse[MarketSummary])
def get_market_summary(gateway: MarketDataGateway = Depends(get_market_gateway)):
    return _respond(gateway.get_market_summary(), MarketSummary)


@router.get("/gainers-losers", response_model=MarketResponse[GainersLosers])
def get_gainers_losers(
    limit: int = Query(5, ge=1, le=50),
    gateway: MarketDataGateway = Depends(get_market_gateway),
):
    return _respond(gateway.get_gainers_losers(limit), GainersLosers)


@router.get("/popular", response_model=MarketResponse[list[CoinSnapshot]])
def get_popular_coins(
    limit: int = Query(6, ge=1, le=12),
    gateway: MarketDataGateway = Depends(get_market_gateway),
):
    return _respond(gateway.get_popular_coins(limit), list[CoinSnapshot])


@router.get("/coins/{coin_id}", response_model=MarketResponse[CoinDetail])
def get_coin(coin_id: str, gateway: MarketDataGateway = Depends(get_market_gateway)):
    return _respond(gateway.get_coin(coin_id), CoinDetail)


@router.get("/news", response_model=list[NewsArticle])
def get_news(
    category: str | None = Query(None, description="e.g. bitcoin, ethereum, defi"),
    q: str | None = Query(None, description="Keyword search over title and body"),
    limit: int = Query(20, ge=1, le=100),
    news: NewsClient = Depends(get_news_client),
):
    """Latest crypto news, optionally filtered by category or keywords."""
    try:
        if q:
            articles = news.search_news(q, limit)
        elif category:
            articles = news.get_news_by_category(category, limit)
        else:
            articles = news.get_latest_news(limit)
    except HTTPClientError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"News provider unavailable: {e}",
        ) from e
    return [NewsArticle.model_validate(a) for a in articles]
