"""Application constants to avoid magic strings."""


class TransactionType:
    """Ledger transaction types."""

    BUY = "buy"
    SELL = "sell"
    TRANSFER = "transfer"

    ALL = (BUY, SELL, TRANSFER)


class PositionStatus:
    """Staking position lifecycle states."""

    ACTIVE = "active"
    WITHDRAWN = "withdrawn"


class CacheKey:
    """Cache key prefixes shared by services."""

    DASHBOARD = "dashboard"
    TOP_COINS = "market:top"
    MARKET_SUMMARY = "market:summary"
    COIN_DETAIL = "market:coin"
    POPULAR_COINS = "market:popular"
    PRICES = "market:prices"


class Currency:
    """Quote currencies accepted by the market data provider."""

    USD = "usd"


# Header carrying the caller's user id, set by the upstream auth gateway
USER_ID_HEADER = "X-User-Id"

SECONDS_PER_DAY = 86400
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY
