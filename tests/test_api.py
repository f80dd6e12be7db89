"""Tests for the HTTP and WebSocket surface (livefeed.main + routes + relay)."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from conftest import FakeFeed, make_candles, make_update
from livefeed.application.ports.market_data_provider import HistoricalCandles
from livefeed.container import create_test_container
from livefeed.domain.exceptions.domain_errors import HistoricalDataError
from livefeed.infrastructure.workers.indicator_worker import IndicatorWorker
from livefeed.main import create_app
from livefeed.presentation.websocket.price_relay import RelayClient
from livefeed.shared.config.settings import Settings


class FakeHistorical:
    def __init__(self, candles=None, fail=False):
        self.candles = candles if candles is not None else make_candles([1.0, 2.0, 3.0], step=60)
        self.fail = fail
        self.calls = []
        self.closed = False

    async def fetch_candles(self, symbol, interval, limit=None):
        self.calls.append(("candles", symbol, interval, limit))
        if self.fail:
            raise HistoricalDataError("upstream down", status_code=502)
        return HistoricalCandles(candles=list(self.candles), meta={"symbol": symbol})

    async def fetch_range(self, symbol, interval, from_, to):
        self.calls.append(("range", symbol, interval, from_, to))
        if from_ is None or to is None or from_ >= to:
            raise ValueError("bad window")
        return HistoricalCandles(candles=list(self.candles), meta={})

    async def aclose(self):
        self.closed = True


@pytest.fixture
def feed():
    return FakeFeed(prices={"BTCUSD": make_update("BTCUSD", 64000.0)})


@pytest.fixture
def historical():
    return FakeHistorical()


@pytest.fixture
def client(feed, historical):
    executor = ThreadPoolExecutor(max_workers=2)
    container = create_test_container(
        settings=Settings(live_candle_intervals=["1"]),
        price_feed=feed,
        historical_source=historical,
        indicator_worker=IndicatorWorker(executor),
    )
    with TestClient(create_app(container)) as test_client:
        yield test_client
    executor.shutdown(wait=True)


class TestRest:

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok", "service": "livefeed"}

    def test_status(self, client):
        body = client.get("/api/status").json()
        assert body["price_feed"]["connected"] is True
        assert body["pending_indicators"] == 0
        assert body["ws_clients"] == 0
        assert body["indicator_worker"]["executor"] == "ThreadPoolExecutor"

    def test_prices(self, client):
        body = client.get("/api/prices").json()
        assert body["connected"] is True
        assert body["prices"]["BTCUSD"]["price"] == 64000.0

    def test_candles_backfilled_then_served_from_store(self, client, historical):
        first = client.get("/api/candles/ETHUSD/1", params={"limit": 2}).json()
        assert first["source"] == "ohlcv"
        assert first["count"] == 2
        assert [c["close"] for c in first["candles"]] == [2.0, 3.0]

        second = client.get("/api/candles/ETHUSD/1").json()
        assert second["source"] == "store"
        assert second["count"] == 3
        assert len(historical.calls) == 1

    def test_candle_range(self, client, historical):
        body = client.get("/api/candles/ETHUSD/5", params={"from": 100, "to": 200}).json()
        assert body["source"] == "ohlcv"
        assert historical.calls == [("range", "ETHUSD", "5", 100, 200)]

    def test_bad_range_is_an_error_body(self, client):
        body = client.get("/api/candles/ETHUSD/5", params={"from": 200, "to": 100}).json()
        assert body["error"] == "bad window"
        assert body["candles"] == []

    def test_bad_interval(self, client):
        body = client.get("/api/candles/ETHUSD/7x").json()
        assert "error" in body

    def test_upstream_failure(self, client, historical):
        historical.fail = True
        body = client.get("/api/candles/ETHUSD/1").json()
        assert body["error"] == "upstream down"

    def test_live_prices_reach_the_store(self, client, feed, historical):
        client.get("/api/candles/SOLUSD/1")
        feed.publish({"SOLUSD": make_update("SOLUSD", 150.0, timestamp=1_700_000_400_000)})
        body = client.get("/api/candles/SOLUSD/1").json()
        assert body["source"] == "store"
        assert body["candles"][-1]["close"] == 150.0
        assert len(historical.calls) == 1

    def test_forming_live_candle_still_gets_history(self, client, historical):
        # BTCUSD already has the candle opened by live tracking
        first = client.get("/api/candles/BTCUSD/1").json()
        assert first["source"] == "ohlcv"
        assert first["count"] == 4
        assert historical.calls == [("candles", "BTCUSD", "1", 500)]

        second = client.get("/api/candles/BTCUSD/1").json()
        assert second["source"] == "store"
        assert len(historical.calls) == 1

    def test_series_already_at_limit_is_not_backfilled(self, client, historical):
        body = client.get("/api/candles/BTCUSD/1", params={"limit": 1}).json()
        assert body["source"] == "store"
        assert body["count"] == 1
        assert historical.calls == []


class TestIndicators:

    def test_inline_candles(self, client):
        candles = [c.to_dict() for c in make_candles([1.0, 2.0, 3.0, 4.0])]
        body = client.post("/api/indicators/sma", json={"candles": candles, "params": {"period": 2}}).json()
        assert body["kind"] == "sma"
        assert body["data"] == pytest.approx(3.5)
        assert "error" not in body
        assert body["request_id"]

    def test_candles_from_store(self, client):
        body = client.post("/api/indicators/ema",
                           json={"symbol": "ETHUSD", "interval": "1", "params": {"period": 3}}).json()
        assert body["data"] == pytest.approx(2.0)

    def test_live_series_uses_backfilled_history(self, client):
        body = client.post("/api/indicators/sma",
                           json={"symbol": "BTCUSD", "interval": "1", "params": {"period": 3}}).json()
        assert body["data"] == pytest.approx(2.0)

    def test_unknown_kind(self, client):
        candles = [c.to_dict() for c in make_candles([1.0, 2.0])]
        body = client.post("/api/indicators/ichimoku", json={"candles": candles}).json()
        assert body["data"] is None
        assert "ichimoku" in body["error"]

    def test_body_needs_candles_or_series(self, client):
        assert client.post("/api/indicators/rsi", json={"params": {}}).status_code == 422


class TestPriceStream:

    def test_status_then_prices_then_ping(self, client):
        with client.websocket_connect("/ws/prices") as ws:
            assert ws.receive_json() == {"type": "status", "connected": True}
            prices = ws.receive_json()
            assert prices["type"] == "prices"
            assert prices["data"][0]["symbol"] == "BTCUSD"

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            ws.send_json({"type": "resync"})
            assert ws.receive_json()["type"] == "prices"

    def test_feed_updates_are_relayed(self, client, feed):
        with client.websocket_connect("/ws/prices") as ws:
            ws.receive_json()
            ws.receive_json()

            # Publish on the app loop, where the relay queues live
            client.portal.call(feed.publish, feed.prices, False)
            assert ws.receive_json() == {"type": "status", "connected": False}
            assert ws.receive_json()["type"] == "prices"

            client.portal.call(feed.publish, {"ETHUSD": make_update("ETHUSD", 3000.0)})
            assert ws.receive_json() == {"type": "status", "connected": True}
            assert ws.receive_json()["data"][0]["symbol"] == "ETHUSD"


class TestRelayClient:

    def test_full_queue_drops_oldest(self):
        relay_client = RelayClient(queue_size=2)
        for payload in ("a", "b", "c"):
            relay_client.enqueue(payload)
        assert relay_client.dropped == 1
        assert relay_client.queue.get_nowait() == "b"

    def test_same_snapshot_is_not_resent(self):
        relay_client = RelayClient(queue_size=10)
        prices = FakeFeed(prices={"BTCUSD": make_update()}).prices
        relay_client.on_prices(prices, True)
        relay_client.on_prices(prices, False)
        kinds = []
        while not relay_client.queue.empty():
            kinds.append(relay_client.queue.get_nowait())
        assert len(kinds) == 3
        assert '"prices"' in kinds[1]
