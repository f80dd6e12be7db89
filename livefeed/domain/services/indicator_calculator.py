"""
LiveFeed – Domain Service: Indicator Calculator
=================================================
Pure technical-indicator formulas over a candle sequence.

Every method reads the sequence it is given and never mutates it. Below the
minimum length a method returns None ("not computable yet"); that is a
normal state for a symbol with short history, not an error. Invalid
parameters (non-positive periods and the like) raise ValueError.

─── EMA ───────────────────────────────────────────────────────────
    seed   = SMA of the first `period` closes
    k      = 2 / (period + 1)
    ema_t  = (close_t − ema_{t-1}) × k + ema_{t-1}      (left to right)

─── RSI (windowed) ────────────────────────────────────────────────
    Only the trailing `period + 1` closes are used on every call:
    avg_gain = Σ gains / period,  avg_loss = Σ losses / period
    avg_loss == 0  →  100
    otherwise      →  100 − 100 / (1 + avg_gain / avg_loss)

    This is NOT Wilder's smoothed running average; the same input gives
    different numbers than canonical RSI. Consumers depend on these values.

─── MACD ──────────────────────────────────────────────────────────
    macd_t   = EMA_fast(prefix_t) − EMA_slow(prefix_t),  t ≥ slow − 1
    signal   = EMA_signal over that MACD line
    needs len ≥ slow + signal

─── VWAP (typical-price mean) ─────────────────────────────────────
    mean((high + low + close) / 3) over all candles.
    Volume is NOT weighted in; the name is kept for compatibility.

─── Bollinger ─────────────────────────────────────────────────────
    middle = SMA(period), half-width = mult × population σ (same window)

─── Stochastic ────────────────────────────────────────────────────
    %K = (close − LL) / (HH − LL) × 100 over k_period (50 on zero range)
    %D = mean of the last d_period %K values

─── OBV ───────────────────────────────────────────────────────────
    0 at the first candle, ± volume on up/down closes, unchanged on flat.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from livefeed.domain.entities.candle import Candle
from livefeed.domain.value_objects.indicator_values import (
    BollingerBands,
    IndicatorSnapshot,
    MacdResult,
    StochasticResult,
)


def require_positive(**periods: int) -> None:
    for name, value in periods.items():
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")


def _closes(candles: Sequence[Candle]) -> List[float]:
    return [c.close for c in candles]


def ema_line(values: Sequence[float], period: int) -> List[float]:
    """
    Running EMA of `values`; element i corresponds to values[period - 1 + i].
    Empty when there are fewer than `period` values.
    """
    if len(values) < period:
        return []
    k = 2.0 / (period + 1)
    ema = sum(values[:period]) / period
    line = [ema]
    for value in values[period:]:
        ema = (value - ema) * k + ema
        line.append(ema)
    return line


def macd_line(closes: Sequence[float], fast: int, slow: int) -> List[float]:
    """
    MACD line from index `slow - 1` onward, advanced incrementally.

    The EMA of every prefix equals the running EMA at that index, so a single
    left-to-right pass gives the same numbers as recomputing each prefix.
    """
    if len(closes) < slow:
        return []
    fast_ema = ema_line(closes, fast)[slow - fast:]
    slow_ema = ema_line(closes, slow)
    return [f - s for f, s in zip(fast_ema, slow_ema)]


def stochastic_k(window: Sequence[Candle]) -> float:
    """%K of the last close of `window` against the window's range."""
    lowest_low = min(c.low for c in window)
    highest_high = max(c.high for c in window)
    if highest_high == lowest_low:
        return 50.0
    return (window[-1].close - lowest_low) / (highest_high - lowest_low) * 100


class IndicatorCalculator:
    """
    Stateless indicator formulas.

    For the time-aligned series form of each indicator see IndicatorSeries.
    """

    @staticmethod
    def sma(candles: Sequence[Candle], period: int) -> Optional[float]:
        """Simple moving average of the last `period` closes."""
        require_positive(period=period)
        if len(candles) < period:
            return None
        return sum(c.close for c in candles[-period:]) / period

    @staticmethod
    def ema(candles: Sequence[Candle], period: int) -> Optional[float]:
        """Exponential moving average of closes, SMA-seeded."""
        require_positive(period=period)
        line = ema_line(_closes(candles), period)
        return line[-1] if line else None

    @staticmethod
    def rsi(candles: Sequence[Candle], period: int = 14) -> Optional[float]:
        """Windowed RSI over the trailing `period + 1` closes."""
        require_positive(period=period)
        if len(candles) < period + 1:
            return None

        window = _closes(candles[-(period + 1):])
        total_gain = 0.0
        total_loss = 0.0
        for prev, curr in zip(window, window[1:]):
            change = curr - prev
            if change > 0:
                total_gain += change
            elif change < 0:
                total_loss -= change

        avg_gain = total_gain / period
        avg_loss = total_loss / period
        if avg_loss == 0:
            return 100.0
        return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)

    @staticmethod
    def macd(
        candles: Sequence[Candle],
        fast: int = 12,
        slow: int = 26,
        signal: int = 9,
    ) -> Optional[MacdResult]:
        """MACD value, signal line and histogram at the last candle."""
        require_positive(fast=fast, slow=slow, signal=signal)
        if fast >= slow:
            raise ValueError(f"fast ({fast}) must be shorter than slow ({slow})")
        if len(candles) < slow + signal:
            return None

        line = macd_line(_closes(candles), fast, slow)
        signal_value = ema_line(line, signal)[-1]
        value = line[-1]
        return MacdResult(value=value, signal=signal_value, histogram=value - signal_value)

    @staticmethod
    def vwap(candles: Sequence[Candle]) -> Optional[float]:
        """Mean typical price (volume is not weighted in, see module docs)."""
        if not candles:
            return None
        return sum(c.typical_price for c in candles) / len(candles)

    @staticmethod
    def bollinger(
        candles: Sequence[Candle],
        period: int = 20,
        std_dev_mult: float = 2.0,
    ) -> Optional[BollingerBands]:
        """Bollinger bands over the last `period` closes (population σ)."""
        require_positive(period=period)
        if std_dev_mult < 0:
            raise ValueError(f"std_dev_mult must be >= 0, got {std_dev_mult}")
        if len(candles) < period:
            return None

        window = _closes(candles[-period:])
        middle = sum(window) / period
        variance = sum((p - middle) ** 2 for p in window) / period
        half_width = std_dev_mult * math.sqrt(variance)
        return BollingerBands(
            upper=middle + half_width,
            middle=middle,
            lower=middle - half_width,
        )

    @staticmethod
    def stochastic(
        candles: Sequence[Candle],
        k_period: int = 14,
        d_period: int = 3,
    ) -> Optional[StochasticResult]:
        """%K at the last candle and %D as the mean of the last d_period %K."""
        require_positive(k_period=k_period, d_period=d_period)
        n = len(candles)
        if n < k_period + d_period - 1:
            return None

        k_values = [
            stochastic_k(candles[i - k_period + 1:i + 1])
            for i in range(n - d_period, n)
        ]
        return StochasticResult(k=k_values[-1], d=sum(k_values) / d_period)

    @staticmethod
    def obv(candles: Sequence[Candle]) -> List[float]:
        """On-balance volume, one value per candle."""
        values: List[float] = []
        running = 0.0
        for i, candle in enumerate(candles):
            if i > 0:
                prev_close = candles[i - 1].close
                if candle.close > prev_close:
                    running += candle.volume
                elif candle.close < prev_close:
                    running -= candle.volume
            values.append(running)
        return values

    @staticmethod
    def calculate_all(candles: Sequence[Candle]) -> IndicatorSnapshot:
        """Every indicator with its default periods (EMA uses 20)."""
        calc = IndicatorCalculator
        return IndicatorSnapshot(
            ema=calc.ema(candles, 20),
            rsi=calc.rsi(candles, 14),
            macd=calc.macd(candles, 12, 26, 9),
            vwap=calc.vwap(candles),
            bollinger=calc.bollinger(candles, 20, 2.0),
            stochastic=calc.stochastic(candles, 14, 3),
        )
