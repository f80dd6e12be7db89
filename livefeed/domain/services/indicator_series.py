"""
LiveFeed – Domain Service: Indicator Series
=============================================
Time-aligned series form of every indicator, for charts that plot the whole
history instead of only the latest value.

Each method returns `(time, value)` points, where `value` is a float or one
of the result records. A series starts at the first candle where the value
is defined, and its last point equals the matching IndicatorCalculator
result whenever that result is defined.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple, TypeVar

from livefeed.domain.entities.candle import Candle
from livefeed.domain.services.indicator_calculator import (
    IndicatorCalculator,
    require_positive,
    ema_line,
    macd_line,
    stochastic_k,
)
from livefeed.domain.value_objects.indicator_values import (
    BollingerBands,
    MacdResult,
    StochasticResult,
)

T = TypeVar("T")
Series = List[Tuple[int, T]]


def _align(candles: Sequence[Candle], values: Sequence[T]) -> Series[T]:
    """Pin `values` to the last len(values) candle times."""
    offset = len(candles) - len(values)
    return [(candles[offset + i].time, v) for i, v in enumerate(values)]


class IndicatorSeries:
    """Series counterparts of IndicatorCalculator."""

    @staticmethod
    def sma(candles: Sequence[Candle], period: int) -> Series[float]:
        require_positive(period=period)
        closes = [c.close for c in candles]
        values = [
            sum(closes[i - period + 1:i + 1]) / period
            for i in range(period - 1, len(closes))
        ]
        return _align(candles, values)

    @staticmethod
    def ema(candles: Sequence[Candle], period: int) -> Series[float]:
        require_positive(period=period)
        return _align(candles, ema_line([c.close for c in candles], period))

    @staticmethod
    def rsi(candles: Sequence[Candle], period: int = 14) -> Series[float]:
        """Each point is recomputed over its own trailing period + 1 window."""
        require_positive(period=period)
        return [
            (candles[i].time, IndicatorCalculator.rsi(candles[i - period:i + 1], period))
            for i in range(period, len(candles))
        ]

    @staticmethod
    def macd(
        candles: Sequence[Candle],
        fast: int = 12,
        slow: int = 26,
        signal: int = 9,
    ) -> Series[MacdResult]:
        require_positive(fast=fast, slow=slow, signal=signal)
        if fast >= slow:
            raise ValueError(f"fast ({fast}) must be shorter than slow ({slow})")

        line = macd_line([c.close for c in candles], fast, slow)
        signal_values = ema_line(line, signal)
        # signal_values[j] lines up with line[signal - 1 + j]
        results = [
            MacdResult(value=value, signal=sig, histogram=value - sig)
            for value, sig in zip(line[signal - 1:], signal_values)
        ]
        return _align(candles, results)

    @staticmethod
    def bollinger(
        candles: Sequence[Candle],
        period: int = 20,
        std_dev_mult: float = 2.0,
    ) -> Series[BollingerBands]:
        require_positive(period=period)
        return [
            (candles[i].time, IndicatorCalculator.bollinger(candles[i - period + 1:i + 1], period, std_dev_mult))
            for i in range(period - 1, len(candles))
        ]

    @staticmethod
    def stochastic(
        candles: Sequence[Candle],
        k_period: int = 14,
        d_period: int = 3,
    ) -> Series[StochasticResult]:
        require_positive(k_period=k_period, d_period=d_period)
        k_values = [
            stochastic_k(candles[i - k_period + 1:i + 1])
            for i in range(k_period - 1, len(candles))
        ]
        results = [
            StochasticResult(k=k_values[i], d=sum(k_values[i - d_period + 1:i + 1]) / d_period)
            for i in range(d_period - 1, len(k_values))
        ]
        return _align(candles, results)

    @staticmethod
    def obv(candles: Sequence[Candle]) -> Series[float]:
        return _align(candles, IndicatorCalculator.obv(candles))
