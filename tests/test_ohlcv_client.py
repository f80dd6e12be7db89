"""Tests for livefeed.infrastructure.external.ohlcv_client."""

import httpx
import pytest

from livefeed.domain.exceptions.domain_errors import HistoricalDataError
from livefeed.infrastructure.external.ohlcv_client import OhlcvClient


def candle(t, close=1.0):
    return {"time": t, "open": close, "high": close, "low": close, "close": close, "volume": 2}


class Server:
    """MockTransport handler that records requests and replies with `body`."""

    def __init__(self, body=None, status=200):
        self.body = body if body is not None else {
            "success": True,
            "data": [candle(120), candle(60)],
            "meta": {"symbol": "BTCUSD", "interval": "1", "count": 2},
        }
        self.status = status
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    def client(self, **kwargs):
        transport = httpx.MockTransport(self)
        return OhlcvClient(
            "http://prices.test/",
            client=httpx.AsyncClient(transport=transport),
            **kwargs,
        )


class TestFetchCandles:

    @pytest.mark.asyncio
    async def test_path_and_limit(self):
        server = Server()
        result = await server.client().fetch_candles("BTC/USD", "1", limit=50)

        url = server.requests[0].url
        assert url.raw_path.split(b"?")[0] == b"/api/ohlcv/BTC%2FUSD/1"
        assert url.params["limit"] == "50"
        assert [c.time for c in result.candles] == [60, 120]
        assert result.meta["count"] == 2

    @pytest.mark.asyncio
    async def test_default_and_clamped_limit(self):
        server = Server()
        client = server.client(default_limit=300, max_limit=1000)
        await client.fetch_candles("BTCUSD", "5")
        await client.fetch_candles("BTCUSD", "5", limit=5000)
        assert [r.url.params["limit"] for r in server.requests] == ["300", "1000"]

    @pytest.mark.asyncio
    async def test_negative_limit(self):
        with pytest.raises(ValueError):
            await Server().client().fetch_candles("BTCUSD", "1", limit=-1)

    @pytest.mark.asyncio
    async def test_duplicate_times_keep_the_last(self):
        server = Server(body={"success": True, "data": [candle(60, 1.0), candle(60, 9.0), candle(0, 3.0)]})
        result = await server.client().fetch_candles("BTCUSD", "1")
        assert [(c.time, c.close) for c in result.candles] == [(0, 3.0), (60, 9.0)]
        assert result.to_dict()["meta"] == {}


class TestFetchRange:

    @pytest.mark.asyncio
    async def test_range_params(self):
        server = Server()
        await server.client().fetch_range("BTCUSD", "15", 1000, 2000)

        url = server.requests[0].url
        assert url.path == "/api/ohlcv/BTCUSD/15/range"
        assert url.params["from"] == "1000"
        assert url.params["to"] == "2000"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("from_, to", [(2000, 1000), (1000, 1000), (None, 1000)])
    async def test_invalid_window(self, from_, to):
        server = Server()
        with pytest.raises(ValueError):
            await server.client().fetch_range("BTCUSD", "15", from_, to)
        assert server.requests == []


class TestFailures:

    @pytest.mark.asyncio
    async def test_success_false(self):
        server = Server(body={"success": False, "error": "Unknown symbol"})
        with pytest.raises(HistoricalDataError) as exc_info:
            await server.client().fetch_candles("NOPE", "1")
        assert exc_info.value.message == "Unknown symbol"

    @pytest.mark.asyncio
    async def test_http_status(self):
        server = Server(body={"error": "boom"}, status=500)
        with pytest.raises(HistoricalDataError) as exc_info:
            await server.client().fetch_candles("BTCUSD", "1")
        assert exc_info.value.status_code == 500
        assert "boom" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_malformed_candle(self):
        server = Server(body={"success": True, "data": [{"time": 1}]})
        with pytest.raises(HistoricalDataError):
            await server.client().fetch_candles("BTCUSD", "1")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client = OhlcvClient(
            "http://prices.test",
            client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)),
        )
        with pytest.raises(HistoricalDataError):
            await client.fetch_candles("BTCUSD", "1")
