"""Binance 24h ticker stream transport (websocket-client)."""

import json
import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import websocket

from coinfolio.config import settings
from coinfolio.services.prices.price_types import PriceHandler, PriceUpdate

logger = logging.getLogger(__name__)

QUOTE_ASSET = "usdt"
MAX_RECONNECT_DELAY = 30.0


def stream_name(symbol: str) -> str:
    """Stream name for a base asset, e.g. btc -> btcusdt@ticker."""
    return f"{symbol}{QUOTE_ASSET}@ticker"


def parse_ticker(payload: dict[str, Any]) -> PriceUpdate | None:
    """Parse a 24hrTicker event; None for anything else (acks, other events)."""
    if payload.get("e") != "24hrTicker":
        return None
    pair = payload["s"].lower()
    symbol = pair[: -len(QUOTE_ASSET)] if pair.endswith(QUOTE_ASSET) else pair
    change = payload.get("P")
    return PriceUpdate(
        symbol=symbol,
        price=Decimal(payload["c"]),
        change_24h=Decimal(change) if change is not None else None,
        timestamp=datetime.fromtimestamp(payload["E"] / 1000, tz=UTC).replace(tzinfo=None),
    )


class BinancePriceStream:
    """Reconnecting websocket connection to Binance's ticker streams.

    Runs ``WebSocketApp.run_forever`` on a daemon thread. After a drop it
    reconnects with exponential backoff, giving up after
    ``max_reconnect_attempts`` consecutive failures.
    """

    def __init__(
        self,
        url: str | None = None,
        max_reconnect_attempts: int | None = None,
        reconnect_delay: float | None = None,
    ) -> None:
        self.url = url or settings.price_stream_url
        self.max_reconnect_attempts = (
            settings.price_stream_max_reconnect_attempts
            if max_reconnect_attempts is None
            else max_reconnect_attempts
        )
        self.reconnect_delay = (
            settings.price_stream_reconnect_delay_seconds
            if reconnect_delay is None
            else reconnect_delay
        )
        self._on_update: PriceHandler | None = None
        self._on_open: Callable[[], None] | None = None
        self._ws: websocket.WebSocketApp | None = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._force_reconnect = threading.Event()
        self._connected = threading.Event()
        self._send_lock = threading.Lock()
        self._request_ids = 0
        self._opened_count = 0

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def set_callbacks(self, on_update: PriceHandler, on_open: Callable[[], None]) -> None:
        self._on_update = on_update
        self._on_open = on_open

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._force_reconnect.clear()
        self._thread = threading.Thread(target=self._run, name="BinancePriceStream", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        self._connected.clear()
        if self._ws is not None:
            self._ws.close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def reconnect(self) -> None:
        """Drop the current connection and reconnect at once, resetting the backoff.

        Starts the stream if it is not running (including after it gave up).
        """
        if self._thread is None or not self._thread.is_alive():
            logger.info("Price stream not running; starting")
            self.start()
            return
        self._force_reconnect.set()
        self._connected.clear()
        if self._ws is not None:
            self._ws.close()

    def send_subscribe(self, symbols: list[str]) -> None:
        self._send("SUBSCRIBE", symbols)

    def send_unsubscribe(self, symbols: list[str]) -> None:
        self._send("UNSUBSCRIBE", symbols)

    def _send(self, method: str, symbols: list[str]) -> None:
        with self._send_lock:
            self._request_ids += 1
            frame = {
                "method": method,
                "params": [stream_name(s) for s in symbols],
                "id": self._request_ids,
            }
            if self._ws is None or not self.is_connected:
                logger.debug(f"Not connected; {method} {symbols} deferred to reconnect")
                return
            try:
                self._ws.send(json.dumps(frame))
            except (websocket.WebSocketException, OSError) as e:
                logger.warning(f"Failed to send {method} for {symbols}: {e}")

    def _run(self) -> None:
        attempts = 0
        while not self._stop.is_set():
            logger.info(f"Connecting to price stream {self.url}")
            self._ws = websocket.WebSocketApp(
                self.url,
                on_open=self._handle_open,
                on_message=self._handle_message,
                on_error=self._handle_error,
                on_close=self._handle_close,
            )
            opened_before = self._opened_count
            self._ws.run_forever(ping_interval=20, ping_timeout=10)
            self._connected.clear()
            if self._stop.is_set():
                break
            if self._force_reconnect.is_set():
                self._force_reconnect.clear()
                attempts = 0
                continue

            attempts = 0 if self._opened_count > opened_before else attempts + 1
            if attempts > self.max_reconnect_attempts:
                logger.error(f"Price stream unreachable after {self.max_reconnect_attempts} attempts; giving up")
                break
            delay = min(self.reconnect_delay * 2**attempts, MAX_RECONNECT_DELAY)
            logger.warning(f"Price stream closed; reconnecting in {delay:.1f}s")
            self._stop.wait(delay)

    def _handle_open(self, _ws) -> None:
        self._opened_count += 1
        self._connected.set()
        logger.info("Price stream connected")
        if self._on_open is not None:
            try:
                self._on_open()
            except Exception:
                logger.exception("Price stream on_open callback failed")

    def _handle_message(self, _ws, message: str) -> None:
        try:
            payload = json.loads(message)
        except ValueError:
            logger.debug(f"Ignoring non-JSON frame: {message[:100]}")
            return
        if isinstance(payload, dict) and "stream" in payload and "data" in payload:
            payload = payload["data"]
        if not isinstance(payload, dict):
            return

        try:
            update = parse_ticker(payload)
        except (KeyError, TypeError, InvalidOperation) as e:
            logger.warning(f"Malformed ticker event: {e!r}")
            return
        if update is not None and self._on_update is not None:
            self._on_update(update)

    def _handle_error(self, _ws, error) -> None:
        logger.error(f"Price stream error: {error}")

    def _handle_close(self, _ws, status_code=None, message=None) -> None:
        self._connected.clear()
        logger.warning(f"Price stream closed ({status_code}): {message}")
