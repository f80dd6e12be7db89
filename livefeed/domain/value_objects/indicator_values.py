"""
LiveFeed – Domain Value Objects: indicator results
====================================================
Typed records for the multi-field indicators. Single-valued indicators
(EMA, SMA, RSI, VWAP) are plain floats; OBV is a list of floats.

Absent values are `None`: "not computable yet", never an error.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class MacdResult:
    value: float
    signal: float
    histogram: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class StochasticResult:
    k: float
    d: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class IndicatorSnapshot:
    """All default-period indicators for one candle sequence."""

    ema: Optional[float] = None
    rsi: Optional[float] = None
    macd: Optional[MacdResult] = None
    vwap: Optional[float] = None
    bollinger: Optional[BollingerBands] = None
    stochastic: Optional[StochasticResult] = None

    def to_dict(self) -> dict:
        return {
            "ema": self.ema,
            "rsi": self.rsi,
            "macd": self.macd.to_dict() if self.macd else None,
            "vwap": self.vwap,
            "bollinger": self.bollinger.to_dict() if self.bollinger else None,
            "stochastic": self.stochastic.to_dict() if self.stochastic else None,
        }
