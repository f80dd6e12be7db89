"""
LiveFeed – Candle Store
=========================
In-memory candle history per (symbol, interval). Pure data, no I/O.

ORDERING:
- Every series is kept strictly increasing in `time` with no duplicates.
  Merging a candle whose time already exists replaces it (the forming
  candle gets refreshed until its bucket closes).
- Out-of-order inserts go through bisect, so history can be back-filled
  from a range request after live candles already landed.

MEMORY PROTECTION:
- Each series keeps at most `max_candles`; the oldest are dropped first.

The indicator engine never owns these lists: callers take a copy with
get() and hand that copy to it.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from livefeed.domain.entities.candle import Candle
from livefeed.domain.value_objects.price_update import PriceUpdate
from livefeed.shared.config.settings import settings
from livefeed.shared.logging.logger import get_logger

logger = get_logger("candle_store")

# Chart intervals: bare numbers are minutes, letters are calendar buckets
_INTERVAL_UNITS: Dict[str, int] = {
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def interval_seconds(interval: str) -> int:
    """
    Bucket length of a chart interval.

    Accepts the chart forms ("1", "5", "15", "60", "240", "D", "W") and
    the suffixed forms ("5m", "1h", "4h", "1d").
    """
    text = interval.strip().lower()
    if text.isdigit():
        seconds = int(text) * 60
    elif text in ("d", "w"):
        seconds = _INTERVAL_UNITS[text]
    elif len(text) > 1 and text[:-1].isdigit() and text[-1] in _INTERVAL_UNITS:
        seconds = int(text[:-1]) * _INTERVAL_UNITS[text[-1]]
    else:
        raise ValueError(f"Unsupported interval: {interval!r}")
    if seconds <= 0:
        raise ValueError(f"Unsupported interval: {interval!r}")
    return seconds


@dataclass
class CandleSeries:
    """Ordered candles of one (symbol, interval)."""

    symbol: str
    interval: str
    max_candles: int
    candles: List[Candle] = field(default_factory=list)
    # Set once the recent history was loaded from the OHLCV source
    history_loaded: bool = False
    _times: List[int] = field(default_factory=list, repr=False)

    def upsert(self, candle: Candle) -> None:
        # Fast path: live updates almost always touch the tail
        if not self._times or candle.time > self._times[-1]:
            self.candles.append(candle)
            self._times.append(candle.time)
        else:
            idx = bisect_left(self._times, candle.time)
            if idx < len(self._times) and self._times[idx] == candle.time:
                self.candles[idx] = candle
            else:
                self.candles.insert(idx, candle)
                self._times.insert(idx, candle.time)
        self._trim()

    def _trim(self) -> None:
        excess = len(self.candles) - self.max_candles
        if excess > 0:
            del self.candles[:excess]
            del self._times[:excess]


class CandleStore:
    """
    Candle history for every (symbol, interval) the application looks at.

    Access: store.get(symbol, interval) → list[Candle] (a copy)
    """

    def __init__(self, max_candles: int | None = None) -> None:
        self._max_candles = max_candles or settings.max_candles_buffer
        self._series: Dict[Tuple[str, str], CandleSeries] = {}

    def _get_or_create(self, symbol: str, interval: str) -> CandleSeries:
        key = (symbol, interval)
        series = self._series.get(key)
        if series is None:
            series = CandleSeries(symbol=symbol, interval=interval, max_candles=self._max_candles)
            self._series[key] = series
            logger.info("Series created for %s/%s (max_candles=%d)",
                        symbol, interval, self._max_candles)
        return series

    def merge(
        self,
        symbol: str,
        interval: str,
        candles: Iterable[Candle],
        *,
        history: bool = False,
    ) -> int:
        """
        Insert or replace candles by time. Returns the series length.

        history=True marks the series as back-filled from the OHLCV source.
        """
        series = self._get_or_create(symbol, interval)
        if history:
            series.history_loaded = True
        for candle in candles:
            series.upsert(candle)
        return len(series.candles)

    def upsert(self, symbol: str, interval: str, candle: Candle) -> None:
        self._get_or_create(symbol, interval).upsert(candle)

    def apply_price(self, update: PriceUpdate, interval: str) -> Optional[Candle]:
        """
        Fold a live price into the candle of the bucket it falls in.

        Same bucket → extend high/low and move close.
        Newer bucket → open a new candle at the price.
        Older bucket → ignored (returns None).
        """
        bucket = interval_seconds(interval)
        bucket_time = (update.timestamp // 1000) // bucket * bucket
        series = self._get_or_create(update.symbol, interval)
        last = series.candles[-1] if series.candles else None
        price = update.price

        if last is not None and bucket_time < last.time:
            logger.debug("Stale price for %s/%s ignored (bucket %d < %d)",
                         update.symbol, interval, bucket_time, last.time)
            return None

        if last is not None and bucket_time == last.time:
            candle = replace(
                last,
                high=max(last.high, price),
                low=min(last.low, price),
                close=price,
            )
        else:
            candle = Candle(time=bucket_time, open=price, high=price, low=price, close=price)

        series.upsert(candle)
        return candle

    def get(self, symbol: str, interval: str, limit: int | None = None) -> List[Candle]:
        """Last `limit` candles (all when None), oldest first."""
        series = self._series.get((symbol, interval))
        if series is None:
            return []
        if limit is None:
            return list(series.candles)
        if limit <= 0:
            return []
        return series.candles[-limit:]

    def has_history(self, symbol: str, interval: str) -> bool:
        series = self._series.get((symbol, interval))
        return series is not None and series.history_loaded

    def latest(self, symbol: str, interval: str) -> Optional[Candle]:
        series = self._series.get((symbol, interval))
        if series is None or not series.candles:
            return None
        return series.candles[-1]

    def clear(self, symbol: str | None = None, interval: str | None = None) -> None:
        """Drop matching series; no arguments drops everything."""
        for key in list(self._series):
            if (symbol is None or key[0] == symbol) and (interval is None or key[1] == interval):
                del self._series[key]

    def keys(self) -> List[Tuple[str, str]]:
        return list(self._series.keys())

    def snapshot(self) -> dict:
        """Diagnostic summary for the status endpoint."""
        return {
            f"{symbol}/{interval}": {
                "count": len(s.candles),
                "first": s.candles[0].time if s.candles else None,
                "last": s.candles[-1].time if s.candles else None,
                "history": s.history_loaded,
            }
            for (symbol, interval), s in self._series.items()
        }
