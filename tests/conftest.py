# tests/conftest.py
import asyncio
import itertools
import json
from types import MappingProxyType

import pytest

from livefeed.application.ports.price_feed import IPriceFeed
from livefeed.domain.entities.candle import Candle
from livefeed.domain.value_objects.price_update import PriceUpdate

_CLOSED = object()


class FakeConnection:
    """In-memory stand-in for a websockets ClientConnection."""

    def __init__(self):
        self.sent = []
        self.close_code = None
        self.close_reason = None
        self._inbox = asyncio.Queue()

    async def send(self, message):
        self.sent.append(json.loads(message))

    async def close(self, code=1000, reason=""):
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
            self._inbox.put_nowait(_CLOSED)

    def feed(self, payload):
        """Queue an inbound frame (dicts are JSON-encoded)."""
        self._inbox.put_nowait(payload if isinstance(payload, str) else json.dumps(payload))

    def drop(self, code=1006):
        """Server-side close with the given code."""
        self.close_code = code
        self._inbox.put_nowait(_CLOSED)

    @property
    def pings(self):
        return sum(1 for m in self.sent if m == {"type": "ping"})

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Connector returning FakeConnections; can fail or block on demand."""

    def __init__(self, failures=0, gate=None, on_attempt=None):
        self.failures = failures
        self.gate = gate
        self.on_attempt = on_attempt
        self.attempts = 0
        self.urls = []
        self.connections = []

    async def __call__(self, url):
        self.attempts += 1
        self.urls.append(url)
        if self.on_attempt is not None:
            self.on_attempt(self.attempts)
        if self.failures > 0:
            self.failures -= 1
            raise OSError("connection refused")
        if self.gate is not None:
            await self.gate.wait()
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    @property
    def latest(self):
        return self.connections[-1]


class FakeFeed(IPriceFeed):
    """IPriceFeed that delivers whatever the test publishes."""

    def __init__(self, prices=None, connected=True):
        self.prices = MappingProxyType(dict(prices or {}))
        self.connected = connected
        self.callbacks = {}
        self._ids = itertools.count()
        self.closed = False

    def subscribe(self, callback):
        token = next(self._ids)
        self.callbacks[token] = callback
        callback(self.prices, self.connected)
        return lambda: self.callbacks.pop(token, None)

    def get_snapshot(self):
        return self.prices

    def is_connected(self):
        return self.connected

    def publish(self, prices, connected=True):
        self.prices = MappingProxyType(dict(prices))
        self.connected = connected
        for callback in list(self.callbacks.values()):
            callback(self.prices, self.connected)

    @property
    def stats(self):
        return {"connected": self.connected, "subscribers": len(self.callbacks)}

    async def aclose(self):
        self.closed = True
        self.callbacks.clear()


def make_update(symbol="BTCUSD", price=100.0, timestamp=1_700_000_000_000, **extra):
    return PriceUpdate(
        symbol=symbol,
        price=price,
        change=extra.pop("change", 0.0),
        change_percent=extra.pop("change_percent", 0.0),
        timestamp=timestamp,
        **extra,
    )


def price_entry(symbol="BTCUSD", price=100.0, timestamp=1_700_000_000_000):
    """Wire form of one prices-frame entry."""
    return {
        "symbol": symbol,
        "price": price,
        "change": 1.5,
        "changePercent": 0.5,
        "timestamp": timestamp,
    }


def make_candles(closes, volumes=None, start=1_700_000_000, step=60, spread=1.0):
    """Candles with the given closes; high/low are close ± spread."""
    volumes = volumes or [1.0] * len(closes)
    return [
        Candle(
            time=start + i * step,
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes))
    ]


async def settle(rounds=10):
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def fake_feed():
    return FakeFeed(prices={"BTCUSD": make_update()})
