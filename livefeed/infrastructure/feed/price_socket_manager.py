"""
LiveFeed – Price Socket Manager
=================================
Single shared push-connection to the price server, fanned out to any
number of subscribers.

LIFECYCLE:
- The first subscribe() opens the connection; the last unsubscribe closes
  it with 1000 and drops every piece of state (prices, timers, attempt
  counter) back to IDLE.
- Each new subscriber is called right away with the current snapshot and
  connectivity flag, without waiting for the next frame.

RECONNECT WITH EXPONENTIAL BACKOFF:
- A close with code 1000 is intentional: no reconnect.
- Any other close (network drop, server error, pong timeout) schedules a
  reconnect after min(base * 2^attempt, max). The counter goes back to 0
  on the next successful open. There is no retry limit while at least one
  subscriber is registered.

HEARTBEAT:
- {"type": "ping"} right after open, then every `heartbeat_interval`.
- A ping arms a `pong_timeout` timer unless one is already running; a pong
  disarms it. When it fires the socket is force-closed with 4000 and the
  reconnect path runs.

SERIALIZATION:
- Every connect attempt carries a generation number. Teardown and forced
  closes bump it, so a socket that finishes opening (or closing) after it
  was abandoned can never resurrect state.
- A new attempt waits until the previous one has finished, so at most one
  connect is in flight even across a teardown.
- Reconnect delay and pong timeout are loop.call_later() handles; nothing
  here blocks, so subscribe/unsubscribe stay responsive at all times.

CONSISTENCY:
- The price map is replaced wholesale per inbound batch and exposed as a
  read-only mapping, so readers never see a half-applied batch.
- Notifications iterate over a copy of the registry; callbacks may
  subscribe or unsubscribe from inside a notification.
"""

from __future__ import annotations

import asyncio
import enum
import time
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, Set

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from livefeed.application.ports.price_feed import IPriceFeed, PriceCallback
from livefeed.domain.exceptions.domain_errors import MalformedFrameError
from livefeed.domain.value_objects.price_update import PriceUpdate
from livefeed.infrastructure.feed.frames import PING_FRAME, PongFrame, parse_frame
from livefeed.infrastructure.feed.subscription_registry import (
    Subscription,
    SubscriptionRegistry,
)
from livefeed.shared.config.settings import settings
from livefeed.shared.logging.logger import get_logger

logger = get_logger("price_socket")

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006
INTERNAL_ERROR = 1011
PONG_TIMEOUT_CLOSE_CODE = 4000

_EMPTY_PRICES: Mapping[str, PriceUpdate] = MappingProxyType({})

Connector = Callable[[str], Awaitable[Any]]


class ConnectionState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    BACKOFF = "backoff"


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Reconnect delay for the given attempt counter (0-based)."""
    return min(base_delay * (2 ** attempt), max_delay)


async def websocket_connector(url: str):
    """Open the upstream socket. Heartbeat is handled at the frame level."""
    return await connect(
        url,
        ping_interval=None,
        ping_timeout=None,
        close_timeout=settings.feed_close_timeout,
        max_size=settings.feed_max_frame_size,
    )


class PriceSocketManager(IPriceFeed):
    """
    Reference-counted price feed over one websocket.

    Create one per process and inject it where prices are needed. Every
    method must be called from the event loop thread.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        connector: Connector | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        heartbeat_interval: float | None = None,
        pong_timeout: float | None = None,
        close_timeout: float | None = None,
    ) -> None:
        self._url = url or settings.feed_ws_url
        self._connector = connector or websocket_connector
        self._base_delay = base_delay if base_delay is not None else settings.feed_reconnect_base_delay
        self._max_delay = max_delay if max_delay is not None else settings.feed_reconnect_max_delay
        self._heartbeat_interval = (
            heartbeat_interval if heartbeat_interval is not None else settings.feed_heartbeat_interval
        )
        self._pong_timeout = pong_timeout if pong_timeout is not None else settings.feed_pong_timeout
        self._close_timeout = close_timeout if close_timeout is not None else settings.feed_close_timeout

        self._registry: SubscriptionRegistry[PriceCallback] = SubscriptionRegistry(
            on_empty=self._teardown
        )
        self._prices: Mapping[str, PriceUpdate] = _EMPTY_PRICES
        self._connected = False
        self._state = ConnectionState.IDLE
        self._generation = 0
        self._ws: Optional[Any] = None

        self._reconnect_attempt = 0
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._pong_timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

        # Monitoring
        self._frames_received = 0
        self._frames_dropped = 0
        self._last_reconnect_delay: Optional[float] = None
        self._connected_since: Optional[float] = None

    # ──────────────────────── Public API ────────────────────────────────

    def subscribe(self, callback: PriceCallback) -> Subscription:
        subscription = self._registry.add(callback)
        if len(self._registry) == 1:
            logger.info("First subscriber registered, opening feed connection")
            self._connect()
        self._deliver(subscription.token, callback)
        return subscription

    def get_snapshot(self) -> Mapping[str, PriceUpdate]:
        return self._prices

    def is_connected(self) -> bool:
        return self._connected

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempt(self) -> int:
        return self._reconnect_attempt

    @property
    def subscriber_count(self) -> int:
        return len(self._registry)

    @property
    def stats(self) -> dict:
        """Manager statistics for monitoring."""
        return {
            "state": self._state.value,
            "connected": self._connected,
            "subscribers": len(self._registry),
            "frames_received": self._frames_received,
            "frames_dropped": self._frames_dropped,
            "reconnect_attempt": self._reconnect_attempt,
            "last_reconnect_delay": self._last_reconnect_delay,
            "connected_since": self._connected_since,
        }

    async def aclose(self) -> None:
        """Drop every subscriber, close the socket and wait for background tasks."""
        had_subscribers = bool(self._registry)
        self._registry.clear()
        if had_subscribers or self._state is not ConnectionState.IDLE:
            self._teardown()

        pending = list(self._tasks)
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self._close_timeout)
            for task in still_running:
                task.cancel()
            if still_running:
                await asyncio.wait(still_running)
        logger.info("PriceSocketManager closed. Frames received: %d", self._frames_received)

    # ──────────────────────── Connection ────────────────────────────────

    def _connect(self) -> None:
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return
        self._cancel_reconnect()
        self._generation += 1
        self._state = ConnectionState.CONNECTING
        previous = self._connect_task
        self._connect_task = self._spawn(self._run(self._generation, previous), name="feed-connect")

    async def _run(self, generation: int, previous: Optional[asyncio.Task] = None) -> None:
        # One attempt in flight at a time; an abandoned one closes its own socket
        if previous is not None and not previous.done():
            logger.debug("Waiting for the abandoned connection attempt to finish")
            await asyncio.wait([previous])
            if generation != self._generation:
                return

        logger.info("Connecting to price feed: %s", self._url)
        try:
            ws = await self._connector(self._url)
        except Exception as e:
            logger.warning("Feed connection failed: %s", e)
            if generation == self._generation:
                self._on_close(ABNORMAL_CLOSURE)
            return

        if generation != self._generation:
            logger.debug("Connection opened after being abandoned, closing it")
            await self._close_socket(ws, NORMAL_CLOSURE, "Stale connection")
            return

        self._ws = ws
        self._on_open(ws, generation)

        try:
            async for raw in ws:
                if generation != self._generation:
                    break
                self._on_message(raw)
        except ConnectionClosed as e:
            logger.warning("Feed connection closed: %s", e)
        except Exception as e:
            logger.error("Unexpected error in feed listener: %s", e, exc_info=True)
            await self._close_socket(ws, INTERNAL_ERROR, "Listener failure")

        if generation == self._generation:
            self._on_close(ws.close_code or ABNORMAL_CLOSURE)

    def _on_open(self, ws: Any, generation: int) -> None:
        self._state = ConnectionState.OPEN
        self._connected = True
        self._reconnect_attempt = 0
        self._connected_since = time.time()
        logger.info("✓ Connected to price feed")
        self._heartbeat_task = self._spawn(self._heartbeat(ws, generation), name="feed-heartbeat")
        self._notify()

    def _on_message(self, raw: str | bytes) -> None:
        self._frames_received += 1
        try:
            frame = parse_frame(raw)
        except MalformedFrameError as e:
            self._frames_dropped += 1
            logger.warning("Dropping malformed feed frame: %s", e.message)
            return

        if isinstance(frame, PongFrame):
            logger.debug("Pong received")
            self._disarm_pong_timer()
            return

        self._prices = MappingProxyType({u.symbol: u for u in frame.updates()})
        logger.debug("Prices frame with %d updates", len(self._prices))
        self._notify()

    def _on_close(self, code: int) -> None:
        was_connected = self._connected
        self._connected = False
        self._ws = None
        self._stop_heartbeat()

        if not self._registry:
            self._state = ConnectionState.IDLE
            return

        if code == NORMAL_CLOSURE:
            logger.info("Feed closed normally (1000), not reconnecting")
            self._state = ConnectionState.IDLE
            self._notify()
            return

        delay = backoff_delay(self._reconnect_attempt, self._base_delay, self._max_delay)
        self._reconnect_attempt += 1
        self._last_reconnect_delay = delay
        self._state = ConnectionState.BACKOFF
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._reconnect)
        logger.info(
            "Feed %s (code %d). Reconnecting in %.1fs (attempt #%d)...",
            "lost" if was_connected else "unavailable",
            code,
            delay,
            self._reconnect_attempt,
        )
        # A callback may tear everything down here; the timer is already
        # registered, so teardown cancels it.
        self._notify()

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._registry:
            self._connect()

    def _teardown(self) -> None:
        logger.info("Last subscriber removed, closing feed connection")
        # Timers first, so no reconnect can race the shutdown
        self._cancel_reconnect()
        self._stop_heartbeat()

        self._generation += 1
        ws, self._ws = self._ws, None
        self._prices = _EMPTY_PRICES
        self._connected = False
        self._reconnect_attempt = 0
        self._connected_since = None

        if ws is None:
            self._state = ConnectionState.IDLE
            return
        self._state = ConnectionState.CLOSING
        self._spawn(self._finish_close(ws, self._generation), name="feed-close")

    async def _finish_close(self, ws: Any, generation: int) -> None:
        await self._close_socket(ws, NORMAL_CLOSURE, "All subscribers removed")
        if generation == self._generation and self._state is ConnectionState.CLOSING:
            self._state = ConnectionState.IDLE

    async def _close_socket(self, ws: Any, code: int, reason: str) -> None:
        try:
            await ws.close(code, reason)
        except Exception as e:
            logger.debug("Error while closing feed socket: %s", e)

    # ──────────────────────── Heartbeat ─────────────────────────────────

    async def _heartbeat(self, ws: Any, generation: int) -> None:
        while generation == self._generation:
            try:
                await ws.send(PING_FRAME)
            except ConnectionClosed:
                logger.debug("Heartbeat stopped, socket already closed")
                return
            except Exception as e:
                logger.warning("Heartbeat send failed, connection probably lost: %s", e)
                return
            self._arm_pong_timer(ws, generation)
            await asyncio.sleep(self._heartbeat_interval)

    def _arm_pong_timer(self, ws: Any, generation: int) -> None:
        # The oldest unanswered ping keeps its deadline
        if self._pong_timer is not None:
            return
        self._pong_timer = asyncio.get_running_loop().call_later(
            self._pong_timeout, self._on_pong_timeout, ws, generation
        )

    def _disarm_pong_timer(self) -> None:
        if self._pong_timer is not None:
            self._pong_timer.cancel()
            self._pong_timer = None

    def _on_pong_timeout(self, ws: Any, generation: int) -> None:
        self._pong_timer = None
        if generation != self._generation:
            return
        logger.warning("No pong within %.1fs, forcing reconnect", self._pong_timeout)
        # Detach the socket now; its listener must not report the close again
        self._generation += 1
        self._spawn(self._close_socket(ws, PONG_TIMEOUT_CLOSE_CODE, "Pong timeout"), name="feed-close")
        self._on_close(PONG_TIMEOUT_CLOSE_CODE)

    def _stop_heartbeat(self) -> None:
        self._disarm_pong_timer()
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
        self._heartbeat_task = None

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # ──────────────────────── Fan-out ───────────────────────────────────

    def _notify(self) -> None:
        prices, connected = self._prices, self._connected
        for token, callback in self._registry.snapshot():
            # Skip subscribers removed by an earlier callback in this round
            if self._registry.is_active(token):
                self._invoke(callback, prices, connected)

    def _deliver(self, token: int, callback: PriceCallback) -> None:
        if self._registry.is_active(token):
            self._invoke(callback, self._prices, self._connected)

    def _invoke(self, callback: PriceCallback, prices: Mapping[str, PriceUpdate], connected: bool) -> None:
        try:
            callback(prices, connected)
        except Exception as e:
            logger.error("Price subscriber raised: %s", e, exc_info=True)

    def _spawn(self, coro: Awaitable[Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
