"""Live prices API router - stream status and a WebSocket price feed.

WebSocket protocol (JSON text frames):

    client -> {"action": "subscribe", "symbols": ["btc", "eth"]}
    client -> {"action": "unsubscribe", "symbols": ["eth"]}
    server -> {"type": "subscribed", "symbols": ["btc", "eth"]}
    server -> {"type": "price", "symbol": "btc", "price": "...", ...}
    server -> {"type": "error", "message": "..."}

Every symbol a client still holds is released when it disconnects.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from coinfolio.dependencies.services import get_price_subscriptions
from coinfolio.schemas.prices import LivePrice, PriceStreamStatus, SymbolSubscription
from coinfolio.services.exceptions import NotFoundError
from coinfolio.services.prices import PriceSubscriptionManager, PriceUpdate
from coinfolio.services.prices.subscription_manager import normalize_symbol

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prices", tags=["prices"])


@router.get("/status", response_model=PriceStreamStatus)
def get_stream_status(prices: PriceSubscriptionManager = Depends(get_price_subscriptions)):
    """Connection state and per-symbol subscriber counts."""
    return PriceStreamStatus(
        connected=prices.is_connected,
        subscriptions=[
            SymbolSubscription(symbol=symbol, subscribers=prices.reference_count(symbol))
            for symbol in prices.subscribed_symbols()
        ],
    )


@router.post("/reconnect")
def reconnect_stream(prices: PriceSubscriptionManager = Depends(get_price_subscriptions)) -> dict:
    """Drop and re-open the upstream connection."""
    prices.reconnect()
    return {"status": "reconnecting"}


@router.get("/{symbol}", response_model=LivePrice)
def get_latest_price(
    symbol: str, prices: PriceSubscriptionManager = Depends(get_price_subscriptions)
):
    """Most recent streamed price of a subscribed symbol."""
    update = prices.latest_price(symbol)
    if update is None:
        raise NotFoundError("Live price", normalize_symbol(symbol))
    return LivePrice.model_validate(update)


def _price_frame(update: PriceUpdate) -> dict:
    return {"type": "price", **LivePrice.model_validate(update).model_dump(mode="json")}


async def _forward_updates(websocket: WebSocket, queue: "asyncio.Queue[PriceUpdate]") -> None:
    while True:
        update = await queue.get()
        await websocket.send_json(_price_frame(update))


@router.websocket("/ws")
async def price_feed(
    websocket: WebSocket, prices: PriceSubscriptionManager = Depends(get_price_subscriptions)
):
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[PriceUpdate] = asyncio.Queue()
    held: set[str] = set()

    def on_update(update: PriceUpdate) -> None:
        # Called from the transport thread
        if update.symbol in held:
            loop.call_soon_threadsafe(queue.put_nowait, update)

    remove_handler = prices.add_handler(on_update)
    forwarder = asyncio.create_task(_forward_updates(websocket, queue))
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            action = message.get("action") if isinstance(message, dict) else None
            symbols = message.get("symbols") if isinstance(message, dict) else None
            if action not in ("subscribe", "unsubscribe") or not isinstance(symbols, list):
                await websocket.send_json(
                    {"type": "error", "message": "Expected an action and a list of symbols"}
                )
                continue

            requested = {normalize_symbol(s) for s in symbols if isinstance(s, str)} - {""}
            if action == "subscribe":
                added = sorted(requested - held)
                held.update(added)
                prices.subscribe(added)
            else:
                dropped = sorted(requested & held)
                held.difference_update(dropped)
                prices.unsubscribe(dropped)
            await websocket.send_json({"type": "subscribed", "symbols": sorted(held)})
    except WebSocketDisconnect:
        logger.debug("Price feed client disconnected")
    finally:
        forwarder.cancel()
        remove_handler()
        prices.unsubscribe(sorted(held))
