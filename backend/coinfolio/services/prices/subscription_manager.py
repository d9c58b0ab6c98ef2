"""Reference-counted live price subscriptions.

Any number of consumers may subscribe to the same symbol; the transport sees
exactly one subscription per symbol. Counts, transitions and the resulting
control frames are serialized by one lock so frames go out in the order the
transitions happened.
"""

import itertools
import logging
import threading
from collections.abc import Callable, Iterable

from coinfolio.services.prices.price_types import PriceHandler, PriceStreamTransport, PriceUpdate

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().lower()


class PriceSubscriptionManager:
    """Subscribe/unsubscribe facade over a single price stream.

    Usage:
        manager = PriceSubscriptionManager(BinancePriceStream())
        remove = manager.add_handler(lambda update: print(update.symbol, update.price))
        manager.start()
        manager.subscribe(["btc", "eth"])
        ...
        manager.unsubscribe(["btc", "eth"])
        remove()
    """

    def __init__(self, transport: PriceStreamTransport) -> None:
        self._transport = transport
        self._counts: dict[str, int] = {}
        self._handlers: dict[int, PriceHandler] = {}
        self._handler_ids = itertools.count(1)
        self._latest: dict[str, PriceUpdate] = {}
        self._lock = threading.Lock()
        transport.set_callbacks(on_update=self.on_price_update, on_open=self.on_transport_open)

    def start(self) -> None:
        self._transport.start()

    def stop(self) -> None:
        self._transport.stop()

    def reconnect(self) -> None:
        """Force the transport to reconnect; live subscriptions are re-issued on open."""
        logger.info("Forcing price stream reconnect")
        self._transport.reconnect()

    @property
    def is_connected(self) -> bool:
        return self._transport.is_connected

    def subscribe(self, symbols: Iterable[str]) -> list[str]:
        """Add one reference per symbol. Returns symbols that were newly opened."""
        with self._lock:
            opened = []
            for symbol in map(normalize_symbol, symbols):
                if not symbol:
                    continue
                count = self._counts.get(symbol, 0)
                if count == 0:
                    opened.append(symbol)
                self._counts[symbol] = count + 1
            if opened and self._transport.is_connected:
                self._transport.send_subscribe(opened)
        if opened:
            logger.info(f"Opened price streams: {', '.join(opened)}")
        return opened

    def unsubscribe(self, symbols: Iterable[str]) -> list[str]:
        """Drop one reference per symbol. Returns symbols that were closed."""
        with self._lock:
            closed = []
            for symbol in map(normalize_symbol, symbols):
                count = self._counts.get(symbol, 0)
                if count == 0:
                    continue
                if count == 1:
                    del self._counts[symbol]
                    self._latest.pop(symbol, None)
                    closed.append(symbol)
                else:
                    self._counts[symbol] = count - 1
            if closed and self._transport.is_connected:
                self._transport.send_unsubscribe(closed)
        if closed:
            logger.info(f"Closed price streams: {', '.join(closed)}")
        return closed

    def add_handler(self, handler: PriceHandler) -> Callable[[], None]:
        """Register a consumer of every update. Returns a callable that removes it."""
        with self._lock:
            handler_id = next(self._handler_ids)
            self._handlers[handler_id] = handler

        def remove() -> None:
            with self._lock:
                self._handlers.pop(handler_id, None)

        return remove

    def on_price_update(self, update: PriceUpdate) -> None:
        """Transport callback: broadcast an update to every handler."""
        with self._lock:
            if update.symbol not in self._counts:
                return
            self._latest[update.symbol] = update
            handlers = list(self._handlers.values())

        for handler in handlers:
            try:
                handler(update)
            except Exception:
                logger.exception(f"Price handler failed for {update.symbol}")

    def on_transport_open(self) -> None:
        """Transport callback: re-issue every live subscription after (re)connect."""
        with self._lock:
            symbols = sorted(self._counts)
            if symbols:
                self._transport.send_subscribe(symbols)
        if symbols:
            logger.info(f"Resubscribed {len(symbols)} price streams after connect")

    def reference_count(self, symbol: str) -> int:
        with self._lock:
            return self._counts.get(normalize_symbol(symbol), 0)

    def subscribed_symbols(self) -> list[str]:
        with self._lock:
            return sorted(self._counts)

    def latest_price(self, symbol: str) -> PriceUpdate | None:
        with self._lock:
            return self._latest.get(normalize_symbol(symbol))
