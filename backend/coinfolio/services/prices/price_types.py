"""Types shared by the price stream transport and the subscription manager."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class PriceUpdate:
    symbol: str  # lower-case base asset, e.g. "btc"
    price: Decimal
    change_24h: Decimal | None
    timestamp: datetime


PriceHandler = Callable[[PriceUpdate], None]


class PriceStreamTransport(Protocol):
    """Connection to a streaming price feed.

    The transport owns connect/reconnect. It calls ``on_open`` after every
    (re)connection and ``on_update`` for each parsed price event.
    """

    @property
    def is_connected(self) -> bool: ...

    def set_callbacks(self, on_update: PriceHandler, on_open: Callable[[], None]) -> None: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def reconnect(self) -> None: ...

    def send_subscribe(self, symbols: list[str]) -> None: ...

    def send_unsubscribe(self, symbols: list[str]) -> None: ...
