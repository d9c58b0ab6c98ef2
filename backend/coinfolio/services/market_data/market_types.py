"""Value objects returned by the market data gateway."""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class CoinSnapshot:
    """One row of a market listing."""

    coin_id: str
    symbol: str
    name: str
    current_price: Decimal
    market_cap: Decimal
    total_volume: Decimal
    price_change_percentage_24h: Decimal
    market_cap_rank: int | None = None
    image: str | None = None


@dataclass(frozen=True)
class MarketSummary:
    total_market_cap: Decimal
    total_volume: Decimal
    btc_dominance: Decimal
    eth_dominance: Decimal


@dataclass(frozen=True)
class CoinDetail:
    coin_id: str
    symbol: str
    name: str
    current_price: Decimal
    market_cap: Decimal
    total_volume: Decimal
    price_change_percentage_24h: Decimal
    description: str = ""
    image: str | None = None
    homepage: str | None = None
    circulating_supply: Decimal | None = None
    total_supply: Decimal | None = None


@dataclass(frozen=True)
class GainersLosers:
    gainers: list[CoinSnapshot] = field(default_factory=list)
    losers: list[CoinSnapshot] = field(default_factory=list)
