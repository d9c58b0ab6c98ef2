"""CoinGecko API client for market listings, global stats and prices."""

import logging
from typing import Any

from coinfolio.config import settings
from coinfolio.services.shared.http_client import HTTPClient

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
COINGECKO_PRO_URL = "https://pro-api.coingecko.com/api/v3"

# Symbol to CoinGecko ID mapping for common cryptocurrencies
SYMBOL_TO_ID: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "BNB": "binancecoin",
    "XRP": "ripple",
    "ADA": "cardano",
    "SOL": "solana",
    "DOT": "polkadot",
    "DOGE": "dogecoin",
    "AVAX": "avalanche-2",
    "TRX": "tron",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "MATIC": "matic-network",
    "LTC": "litecoin",
    "ATOM": "cosmos",
    "USDT": "tether",
    "USDC": "usd-coin",
}


class CoinGeckoClient(HTTPClient):
    """Client for CoinGecko's public (or pro) REST API.

    Errors are not swallowed here: every failure surfaces as ``HTTPClientError``
    so the gateway can decide on a fallback.

    Usage:
        with CoinGeckoClient() as client:
            markets = client.get_markets(per_page=10)
            stats = client.get_global()
    """

    def __init__(
        self,
        api_key: str | None = None,
        use_pro_api: bool | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.coingecko_api_key
        self.use_pro_api = settings.coingecko_use_pro_api if use_pro_api is None else use_pro_api
        super().__init__(
            base_url=COINGECKO_PRO_URL if self.use_pro_api else COINGECKO_BASE_URL,
            timeout=timeout or settings.market_data_timeout_seconds,
            headers=self._get_headers(),
        )

    def _get_headers(self) -> dict[str, str]:
        """Get request headers including API key if available."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            if self.use_pro_api:
                headers["x-cg-pro-api-key"] = self.api_key
            else:
                headers["x-cg-demo-api-key"] = self.api_key
        return headers

    @staticmethod
    def symbol_to_id(symbol: str) -> str:
        """Convert a ticker symbol (e.g. "BTC") to a CoinGecko ID (e.g. "bitcoin")."""
        upper_symbol = symbol.upper()
        if upper_symbol in SYMBOL_TO_ID:
            return SYMBOL_TO_ID[upper_symbol]
        return symbol.lower()

    def get_markets(
        self,
        vs_currency: str = "usd",
        per_page: int = 50,
        page: int = 1,
        ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """List coins with market data, ordered by market cap descending."""
        params: dict[str, Any] = {
            "vs_currency": vs_currency,
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": page,
            "sparkline": "false",
            "price_change_percentage": "24h",
        }
        if ids:
            params["ids"] = ",".join(ids)
        result = self.get_json("/coins/markets", params=params)
        logger.info(f"Fetched {len(result)} market rows from CoinGecko")
        return result

    def get_global(self) -> dict[str, Any]:
        """Global market statistics (``data`` member of /global)."""
        return self.get_json("/global")["data"]

    def get_coin(self, coin_id: str) -> dict[str, Any]:
        """Detailed coin data including market data."""
        params = {
            "localization": "false",
            "tickers": "false",
            "market_data": "true",
            "community_data": "false",
            "developer_data": "false",
            "sparkline": "false",
        }
        return self.get_json(f"/coins/{coin_id}", params=params)

    def get_simple_prices(self, coin_ids: list[str], vs_currency: str = "usd") -> dict[str, Any]:
        """Spot prices keyed by coin id: ``{"bitcoin": {"usd": 65000.0, "usd_24h_change": 1.2}}``."""
        if not coin_ids:
            return {}
        params = {
            "ids": ",".join(coin_ids),
            "vs_currencies": vs_currency,
            "include_24hr_change": "true",
        }
        return self.get_json("/simple/price", params=params)
