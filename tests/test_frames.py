"""Tests for livefeed.infrastructure.feed.frames."""

import json

import pytest

from conftest import make_update
from livefeed.domain.exceptions.domain_errors import MalformedFrameError
from livefeed.infrastructure.feed.frames import (
    PING_FRAME,
    PongFrame,
    PricesFrame,
    parse_frame,
    prices_frame,
)


class TestParseFrame:

    def test_prices_frame_with_camel_case_fields(self):
        raw = json.dumps({
            "type": "prices",
            "data": [{
                "symbol": "BTCUSD",
                "price": 64000.5,
                "change": 120.0,
                "changePercent": 0.19,
                "timestamp": 1_700_000_000_123,
                "volume": 12.5,
                "marketCap": 1.2e12,
            }],
        })
        frame = parse_frame(raw)

        assert isinstance(frame, PricesFrame)
        update = frame.updates()[0]
        assert update.symbol == "BTCUSD"
        assert update.change_percent == 0.19
        assert update.market_cap == 1.2e12
        assert update.timestamp == 1_700_000_000_123

    def test_optional_fields_may_be_absent(self):
        raw = json.dumps({
            "type": "prices",
            "data": [{"symbol": "ETHUSD", "price": 1.0, "change": 0, "changePercent": 0, "timestamp": 1}],
        })
        update = parse_frame(raw).updates()[0]
        assert update.volume is None
        assert update.market_cap is None

    def test_pong(self):
        assert isinstance(parse_frame('{"type": "pong"}'), PongFrame)

    def test_bytes_are_accepted(self):
        assert isinstance(parse_frame(b'{"type": "pong"}'), PongFrame)

    @pytest.mark.parametrize("raw", [
        "not json",
        '{"type": "mystery"}',
        '{"data": []}',
        '{"type": "prices", "data": [{"symbol": "X"}]}',
        '{"type": "prices"}',
    ])
    def test_malformed(self, raw):
        with pytest.raises(MalformedFrameError) as exc_info:
            parse_frame(raw)
        assert exc_info.value.code == "MALFORMED_FRAME"
        assert exc_info.value.raw == raw


class TestOutboundFrames:

    def test_ping(self):
        assert json.loads(PING_FRAME) == {"type": "ping"}

    def test_prices_frame_uses_wire_names(self):
        payload = json.loads(prices_frame([make_update("BTCUSD", 10.0, change_percent=2.0)]))
        assert payload["type"] == "prices"
        entry = payload["data"][0]
        assert entry["changePercent"] == 2.0
        assert "marketCap" not in entry
