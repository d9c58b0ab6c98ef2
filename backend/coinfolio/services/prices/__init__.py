"""Live price streaming with reference-counted symbol subscriptions."""

from .binance_stream import BinancePriceStream
from .price_types import PriceUpdate
from .subscription_manager import PriceSubscriptionManager

__all__ = ["BinancePriceStream", "PriceSubscriptionManager", "PriceUpdate"]
