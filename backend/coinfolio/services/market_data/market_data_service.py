"""Market data gateway.

Wraps the CoinGecko client with a TTL cache and a fallback policy: reads never
raise. A provider failure or malformed payload yields ``Fallback`` carrying
deterministic data and the reason, so callers can tell real data from
placeholders. Only ``Ok`` results are cached.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Generic, TypeVar

from coinfolio.config import settings
from coinfolio.constants import CacheKey, Currency
from coinfolio.services.market_data import fallback_data
from coinfolio.services.market_data.coingecko_client import CoinGeckoClient
from coinfolio.services.market_data.market_types import (
    CoinDetail,
    CoinSnapshot,
    GainersLosers,
    MarketSummary,
)
from coinfolio.services.shared.cache import MISSING, TTLCache
from coinfolio.services.shared.http_client import FailureReason, HTTPClientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Size of the listing gainers/losers are ranked from
GAINERS_LOSERS_UNIVERSE = 100

_MALFORMED = (KeyError, TypeError, ValueError, AttributeError, InvalidOperation)


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T
    is_fallback: ClassVar[bool] = False
    reason: ClassVar[FailureReason | None] = None


@dataclass(frozen=True)
class Fallback(Generic[T]):
    data: T
    reason: FailureReason
    is_fallback: ClassVar[bool] = True


MarketResult = Ok[T] | Fallback[T]


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _optional_decimal(value: Any, default: Decimal | None = Decimal("0")) -> Decimal | None:
    return default if value is None else Decimal(str(value))


def parse_market_row(row: dict[str, Any]) -> CoinSnapshot:
    """Convert a /coins/markets row to a CoinSnapshot."""
    return CoinSnapshot(
        coin_id=row["id"],
        symbol=row["symbol"].upper(),
        name=row["name"],
        current_price=_decimal(row["current_price"]),
        market_cap=_optional_decimal(row.get("market_cap")),
        total_volume=_optional_decimal(row.get("total_volume")),
        price_change_percentage_24h=_optional_decimal(row.get("price_change_percentage_24h")),
        market_cap_rank=row.get("market_cap_rank"),
        image=row.get("image"),
    )


def parse_global(data: dict[str, Any], currency: str = Currency.USD) -> MarketSummary:
    dominance = data["market_cap_percentage"]
    return MarketSummary(
        total_market_cap=_decimal(data["total_market_cap"][currency]),
        total_volume=_decimal(data["total_volume"][currency]),
        btc_dominance=round(_decimal(dominance["btc"]), 2),
        eth_dominance=round(_decimal(dominance["eth"]), 2),
    )


def parse_coin(data: dict[str, Any], currency: str = Currency.USD) -> CoinDetail:
    market = data["market_data"]
    homepages = [url for url in data.get("links", {}).get("homepage", []) if url]
    return CoinDetail(
        coin_id=data["id"],
        symbol=data["symbol"].upper(),
        name=data["name"],
        current_price=_decimal(market["current_price"][currency]),
        market_cap=_optional_decimal(market.get("market_cap", {}).get(currency)),
        total_volume=_optional_decimal(market.get("total_volume", {}).get(currency)),
        price_change_percentage_24h=_optional_decimal(market.get("price_change_percentage_24h")),
        description=data.get("description", {}).get("en", ""),
        image=data.get("image", {}).get("large"),
        homepage=homepages[0] if homepages else None,
        circulating_supply=_optional_decimal(market.get("circulating_supply"), None),
        total_supply=_optional_decimal(market.get("total_supply"), None),
    )


class MarketDataGateway:
    """Cached, failure-tolerant access to market data.

    Usage:
        gateway = MarketDataGateway(cache=TTLCache())
        result = gateway.get_top_coins(10)
        if result.is_fallback:
            logger.info(f"Showing placeholder data ({result.reason})")
        coins = result.data
    """

    def __init__(
        self,
        client: CoinGeckoClient | None = None,
        cache: TTLCache | None = None,
        cache_ttl: float | None = None,
    ):
        self._client = client or CoinGeckoClient()
        self._cache = cache if cache is not None else TTLCache()
        self._ttl = settings.market_data_cache_ttl_seconds if cache_ttl is None else cache_ttl

    def _fetch(
        self,
        key: str,
        fetch: Callable[[], T],
        fallback: Callable[[], T],
        what: str,
    ) -> MarketResult[T]:
        cached = self._cache.get(key, MISSING)
        if cached is not MISSING:
            return Ok(cached)

        try:
            data = fetch()
        except HTTPClientError as e:
            logger.warning(f"{what} unavailable ({e.reason}): {e}. Using fallback data.")
            return Fallback(fallback(), e.reason)
        except _MALFORMED as e:
            logger.warning(f"Malformed {what} response: {e!r}. Using fallback data.")
            return Fallback(fallback(), FailureReason.MALFORMED_RESPONSE)

        self._cache.set(key, data, self._ttl)
        return Ok(data)

    def get_top_coins(
        self, limit: int = 50, currency: str = Currency.USD
    ) -> MarketResult[list[CoinSnapshot]]:
        """Top coins by market cap, largest first."""

        def fetch() -> list[CoinSnapshot]:
            rows = self._client.get_markets(vs_currency=currency, per_page=limit)
            coins = [parse_market_row(row) for row in rows]
            coins.sort(key=lambda c: c.market_cap, reverse=True)
            return coins[:limit]

        return self._fetch(
            f"{CacheKey.TOP_COINS}:{currency}:{limit}",
            fetch,
            lambda: fallback_data.top_coins(limit),
            "top coins",
        )

    def get_market_summary(self, currency: str = Currency.USD) -> MarketResult[MarketSummary]:
        return self._fetch(
            f"{CacheKey.MARKET_SUMMARY}:{currency}",
            lambda: parse_global(self._client.get_global(), currency),
            lambda: fallback_data.MARKET_SUMMARY,
            "market summary",
        )

    def get_coin(self, coin_id: str, currency: str = Currency.USD) -> MarketResult[CoinDetail]:
        return self._fetch(
            f"{CacheKey.COIN_DETAIL}:{currency}:{coin_id}",
            lambda: parse_coin(self._client.get_coin(coin_id), currency),
            lambda: fallback_data.coin_detail(coin_id),
            f"coin {coin_id}",
        )

    def get_popular_coins(
        self, limit: int = 6, currency: str = Currency.USD
    ) -> MarketResult[list[CoinSnapshot]]:
        """Market rows for a fixed list of well-known coins."""

        def fetch() -> list[CoinSnapshot]:
            rows = self._client.get_markets(
                vs_currency=currency, per_page=limit, ids=fallback_data.POPULAR_COIN_IDS
            )
            return [parse_market_row(row) for row in rows][:limit]

        return self._fetch(
            f"{CacheKey.POPULAR_COINS}:{currency}:{limit}",
            fetch,
            lambda: fallback_data.popular_coins(limit),
            "popular coins",
        )

    def get_gainers_losers(self, limit: int = 5) -> MarketResult[GainersLosers]:
        """Biggest 24h movers among the top coins.

        Gainers are ordered by change descending, losers by change ascending
        (biggest loser first).
        """
        universe = self.get_top_coins(GAINERS_LOSERS_UNIVERSE)
        if universe.is_fallback:
            return Fallback(fallback_data.gainers_losers(limit), universe.reason)
        if not universe.data:
            logger.info("No coins returned for gainers/losers. Using fallback data.")
            return Fallback(fallback_data.gainers_losers(limit), FailureReason.NO_DATA)

        ranked = sorted(universe.data, key=lambda c: c.price_change_percentage_24h, reverse=True)
        return Ok(
            GainersLosers(
                gainers=ranked[:limit],
                losers=list(reversed(ranked[-limit:])),
            )
        )

    def get_prices(
        self, coin_ids: list[str], currency: str = Currency.USD
    ) -> MarketResult[dict[str, Decimal]]:
        """Spot prices keyed by coin id. Coins the provider does not know are absent."""
        ids = sorted(set(coin_ids))
        if not ids:
            return Ok({})

        def fetch() -> dict[str, Decimal]:
            result = self._client.get_simple_prices(ids, currency)
            return {
                coin_id: _decimal(quote[currency])
                for coin_id, quote in result.items()
                if quote.get(currency) is not None
            }

        return self._fetch(
            f"{CacheKey.PRICES}:{currency}:{','.join(ids)}",
            fetch,
            lambda: fallback_data.prices(ids),
            "prices",
        )
