"""Market data: provider client, fallback tables and the caching gateway."""

from coinfolio.services.market_data.market_data_service import (
    Fallback,
    MarketDataGateway,
    MarketResult,
    Ok,
)

__all__ = ["Fallback", "MarketDataGateway", "MarketResult", "Ok"]
