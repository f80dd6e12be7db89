"""
LiveFeed – Price Relay (browser clients)
==========================================
Serves /ws/prices to browser clients using the same frame protocol as the
upstream feed.

    PriceSocketManager ──subscribe()──▸ RelayClient.on_prices()
                                             │ (bounded queue)
                                             ▼
                                        websocket.send_text()

ONE UPSTREAM CONNECTION:
- Each browser client is one subscriber of the shared manager; the first
  client opens the upstream socket and the last one closes it.

FRAMES TO THE CLIENT:
- {"type": "prices", "data": [...]}        on every new snapshot
- {"type": "status", "connected": bool}    when connectivity changes
- {"type": "pong"}                         answer to {"type": "ping"}
- a fresh prices frame                     answer to {"type": "resync"}

SLOW CLIENTS:
- Every client has its own bounded queue. When it is full the oldest
  frame is dropped, so one slow browser never holds up the fan-out.
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from livefeed.application.ports.price_feed import IPriceFeed, PriceSnapshot
from livefeed.infrastructure.feed.frames import PONG_FRAME, prices_frame
from livefeed.shared.config.settings import settings
from livefeed.shared.logging.logger import get_logger

logger = get_logger("price_relay")


class RelayClient:
    """Outbound buffer and dedup state of one browser connection."""

    def __init__(self, queue_size: int) -> None:
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0
        self._last_connected: Optional[bool] = None
        self._last_prices: Optional[PriceSnapshot] = None

    def on_prices(self, prices: PriceSnapshot, connected: bool) -> None:
        if connected != self._last_connected:
            self._last_connected = connected
            self.enqueue(json.dumps({"type": "status", "connected": connected}))
        # The manager re-delivers the same snapshot object on status changes
        if prices is not self._last_prices:
            self._last_prices = prices
            if prices:
                self.enqueue(prices_frame(prices.values()))

    def enqueue(self, payload: str) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(payload)


class PriceRelay:
    """Relays the shared price feed to any number of browser websockets."""

    def __init__(self, feed: IPriceFeed, queue_size: int | None = None) -> None:
        self._feed = feed
        self._queue_size = queue_size or settings.relay_queue_size
        self._clients: Set[RelayClient] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def serve(self, websocket: WebSocket) -> None:
        """Handle one client for the lifetime of its connection."""
        await websocket.accept()
        client = RelayClient(self._queue_size)
        self._clients.add(client)
        unsubscribe = self._feed.subscribe(client.on_prices)
        logger.info("Relay client connected. Total: %d", len(self._clients))

        sender = asyncio.create_task(self._send_loop(websocket, client), name="relay-send")
        try:
            while True:
                raw = await websocket.receive_text()
                self._on_client_frame(client, raw)
        except WebSocketDisconnect:
            pass
        finally:
            unsubscribe()
            self._clients.discard(client)
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            logger.info("Relay client disconnected (%d frames dropped). Total: %d",
                        client.dropped, len(self._clients))

    def _on_client_frame(self, client: RelayClient, raw: str) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Non-JSON message from relay client, ignoring")
            return

        msg_type = message.get("type") if isinstance(message, dict) else None
        if msg_type == "ping":
            client.enqueue(PONG_FRAME)
        elif msg_type == "resync":
            client.enqueue(prices_frame(self._feed.get_snapshot().values()))
        else:
            logger.debug("Unknown relay message type: %r", msg_type)

    async def _send_loop(self, websocket: WebSocket, client: RelayClient) -> None:
        while True:
            payload = await client.queue.get()
            try:
                await websocket.send_text(payload)
            except Exception as e:
                logger.debug("Relay send failed, client gone: %s", e)
                return
