"""
LiveFeed – Domain Entity: Candle
==================================
Immutable OHLCV candle for one time bucket.

Design decisions:
- frozen=True → a candle handed to the indicator engine can never be
  altered underneath a running computation.
- dataclass rather than Pydantic (lighter on the hot path, picklable for
  the worker pool).
- `time` is the bucket open in UTC seconds, the unit the chart and the
  historical endpoints use.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from livefeed.domain.exceptions.domain_errors import InvalidCandleError


@dataclass(frozen=True, slots=True)
class Candle:
    """OHLCV candle keyed by its bucket open time."""

    time: int            # UTC seconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3

    def to_dict(self) -> dict:
        """Wire form (same field names as the /api/ohlcv payload)."""
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candle":
        """Build from a wire dict. Volume is optional, everything else is not."""
        try:
            return cls(
                time=int(data["time"]),
                open=float(data["open"]),
                high=float(data["high"]),
                low=float(data["low"]),
                close=float(data["close"]),
                volume=float(data.get("volume") or 0.0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCandleError(f"Malformed candle {data!r}: {exc}") from exc


def coerce_candles(items: Iterable[Candle | Mapping[str, Any]]) -> list[Candle]:
    """
    Normalise a mixed list of Candle / wire dicts and check the ordering
    invariant: strictly increasing `time`, no duplicates.
    """
    candles: list[Candle] = []
    for item in items:
        candle = item if isinstance(item, Candle) else Candle.from_dict(item)
        if candles and candle.time <= candles[-1].time:
            raise InvalidCandleError(
                f"Candles must be strictly increasing in time "
                f"(got {candle.time} after {candles[-1].time})"
            )
        candles.append(candle)
    return candles
