"""Deterministic market data served when the provider is unreachable."""

from decimal import Decimal

from coinfolio.services.market_data.market_types import (
    CoinDetail,
    CoinSnapshot,
    GainersLosers,
    MarketSummary,
)

_IMAGE_BASE = "https://assets.coingecko.com/coins/images"

MARKET_SUMMARY = MarketSummary(
    total_market_cap=Decimal("2345678901234"),
    total_volume=Decimal("123456789012"),
    btc_dominance=Decimal("42.5"),
    eth_dominance=Decimal("18.3"),
)

# Coin ids treated as "popular" / trending, in display order
POPULAR_COIN_IDS = [
    "bitcoin",
    "ethereum",
    "binancecoin",
    "ripple",
    "cardano",
    "solana",
    "polkadot",
    "dogecoin",
    "avalanche-2",
    "tron",
    "chainlink",
    "uniswap",
]


def _coin(
    coin_id: str,
    symbol: str,
    name: str,
    price: str,
    market_cap: str,
    volume: str,
    change: str,
    image: str,
) -> CoinSnapshot:
    return CoinSnapshot(
        coin_id=coin_id,
        symbol=symbol,
        name=name,
        current_price=Decimal(price),
        market_cap=Decimal(market_cap),
        total_volume=Decimal(volume),
        price_change_percentage_24h=Decimal(change),
        image=f"{_IMAGE_BASE}/{image}",
    )


POPULAR_COINS = [
    _coin("bitcoin", "BTC", "Bitcoin", "35938.21", "689.4e9", "28.3e9", "3.2", "1/large/bitcoin.png"),
    _coin("ethereum", "ETH", "Ethereum", "2341.23", "281.3e9", "18.9e9", "1.8", "279/large/ethereum.png"),
    _coin("binancecoin", "BNB", "Binance Coin", "341.27", "52.4e9", "1.9e9", "-0.8", "825/large/bnb-icon2_2x.png"),
    _coin("solana", "SOL", "Solana", "94.82", "39.8e9", "3.1e9", "5.6", "4128/large/solana.png"),
    _coin("ripple", "XRP", "XRP", "0.51", "27.3e9", "1.2e9", "-1.2", "44/large/xrp-symbol-white-128.png"),
    _coin("cardano", "ADA", "Cardano", "0.44", "15.6e9", "0.9e9", "-2.1", "975/large/cardano.png"),
    _coin("dogecoin", "DOGE", "Dogecoin", "0.12", "17.65e9", "876.54e6", "-3.21", "5/large/dogecoin.png"),
    _coin("polkadot", "DOT", "Polkadot", "6.78", "9.87e9", "432.10e6", "-2.34", "12171/large/polkadot.png"),
]

GAINERS = [
    _coin("solana", "SOL", "Solana", "123.45", "53.21e9", "2.34e9", "8.76", "4128/large/solana.png"),
    _coin("cardano", "ADA", "Cardano", "0.54", "19.87e9", "765.43e6", "5.43", "975/large/cardano.png"),
    _coin(
        "avalanche-2",
        "AVAX",
        "Avalanche",
        "34.21",
        "12.43e9",
        "765.43e6",
        "4.87",
        "12559/large/Avalanche_Circle_RedWhite_Trans.png",
    ),
    _coin("bitcoin", "BTC", "Bitcoin", "65432.10", "1.23e12", "45.67e9", "3.45", "1/large/bitcoin.png"),
    _coin("ethereum", "ETH", "Ethereum", "3456.78", "415.67e9", "23.45e9", "2.34", "279/large/ethereum.png"),
]

LOSERS = [
    _coin("dogecoin", "DOGE", "Dogecoin", "0.12", "17.65e9", "876.54e6", "-3.21", "5/large/dogecoin.png"),
    _coin("polkadot", "DOT", "Polkadot", "6.78", "9.87e9", "432.10e6", "-2.34", "12171/large/polkadot.png"),
    _coin("chainlink", "LINK", "Chainlink", "12.34", "6.54e9", "321.09e6", "-1.98", "877/large/chainlink-new-logo.png"),
    _coin("uniswap", "UNI", "Uniswap", "5.67", "4.32e9", "210.98e6", "-1.76", "12504/large/uniswap-uni.png"),
    _coin("binancecoin", "BNB", "BNB", "341.27", "52.4e9", "1.9e9", "-0.87", "825/large/bnb-icon2_2x.png"),
]

# Generic figures for coins not present in any table above
GENERIC_PRICE = Decimal("100")
GENERIC_MARKET_CAP = Decimal("1000000000")
GENERIC_VOLUME = Decimal("50000000")
GENERIC_CHANGE_24H = Decimal("1.5")


def top_coins(limit: int) -> list[CoinSnapshot]:
    ranked = sorted(POPULAR_COINS, key=lambda c: c.market_cap, reverse=True)
    return ranked[:limit]


def popular_coins(limit: int) -> list[CoinSnapshot]:
    return POPULAR_COINS[:limit]


def gainers_losers(limit: int) -> GainersLosers:
    return GainersLosers(gainers=GAINERS[:limit], losers=LOSERS[:limit])


def find_coin(coin_id: str) -> CoinSnapshot | None:
    for coin in POPULAR_COINS:
        if coin.coin_id == coin_id:
            return coin
    return None


def coin_detail(coin_id: str) -> CoinDetail:
    """Fallback detail for ``coin_id``: table figures when known, generic ones otherwise."""
    coin = find_coin(coin_id)
    if coin is not None:
        return CoinDetail(
            coin_id=coin.coin_id,
            symbol=coin.symbol,
            name=coin.name,
            current_price=coin.current_price,
            market_cap=coin.market_cap,
            total_volume=coin.total_volume,
            price_change_percentage_24h=coin.price_change_percentage_24h,
            image=coin.image,
        )
    return CoinDetail(
        coin_id=coin_id,
        symbol=coin_id[:3].upper(),
        name=coin_id.replace("-", " ").title(),
        current_price=GENERIC_PRICE,
        market_cap=GENERIC_MARKET_CAP,
        total_volume=GENERIC_VOLUME,
        price_change_percentage_24h=GENERIC_CHANGE_24H,
    )


def prices(coin_ids: list[str]) -> dict[str, Decimal]:
    """Fallback spot prices. Coins outside the table are left out."""
    known = {coin.coin_id: coin.current_price for coin in POPULAR_COINS}
    return {coin_id: known[coin_id] for coin_id in coin_ids if coin_id in known}
