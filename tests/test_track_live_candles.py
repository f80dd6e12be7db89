"""Tests for livefeed.application.use_cases.track_live_candles_usecase."""

import pytest

from conftest import FakeFeed, make_update
from livefeed.application.use_cases.track_live_candles_usecase import TrackLiveCandlesUseCase
from livefeed.state.candle_store import CandleStore


def test_prices_fold_into_forming_candles():
    feed = FakeFeed(prices={"BTCUSD": make_update(price=10.0, timestamp=60_000)})
    store = CandleStore(max_candles=10)
    usecase = TrackLiveCandlesUseCase(feed, store, ["1", "5"])
    usecase.start()

    feed.publish({"BTCUSD": make_update(price=12.0, timestamp=90_000)})
    feed.publish({"BTCUSD": make_update(price=11.0, timestamp=120_000)})

    one_minute = store.get("BTCUSD", "1")
    assert [(c.time, c.open, c.high, c.close) for c in one_minute] == [
        (60, 10.0, 12.0, 12.0),
        (120, 11.0, 11.0, 11.0),
    ]
    five_minute = store.get("BTCUSD", "5")
    assert len(five_minute) == 1
    assert five_minute[0].high == 12.0
    assert usecase.updates_applied == 3


def test_redelivered_snapshot_is_not_applied_twice():
    feed = FakeFeed(prices={"BTCUSD": make_update(price=10.0, timestamp=60_000)})
    usecase = TrackLiveCandlesUseCase(feed, CandleStore(max_candles=10), ["1"])
    usecase.start()

    feed.publish(feed.prices, connected=False)
    feed.publish(feed.prices, connected=True)
    assert usecase.updates_applied == 1


def test_stop_unsubscribes():
    feed = FakeFeed()
    usecase = TrackLiveCandlesUseCase(feed, CandleStore(max_candles=10), ["1"])
    usecase.start()
    usecase.start()
    assert len(feed.callbacks) == 1
    assert usecase.running

    usecase.stop()
    assert feed.callbacks == {}
    assert not usecase.running


def test_no_intervals_means_no_subscription():
    feed = FakeFeed()
    TrackLiveCandlesUseCase(feed, CandleStore(max_candles=10), []).start()
    assert feed.callbacks == {}


def test_bad_interval_fails_at_construction():
    with pytest.raises(ValueError):
        TrackLiveCandlesUseCase(FakeFeed(), CandleStore(max_candles=10), ["1", "7x"])
