"""
LiveFeed – Application Port: Historical Candle Source
=======================================================
Interface for fetching candle history.

Use cases ask for candles; infrastructure decides WHERE they come from
(the OHLCV REST endpoint, a fixture in tests, ...).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from livefeed.domain.entities.candle import Candle


@dataclass(frozen=True, slots=True)
class HistoricalCandles:
    """Candles of one request plus the server's meta block."""

    candles: List[Candle]
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "data": [c.to_dict() for c in self.candles],
            "meta": dict(self.meta),
        }


class IHistoricalCandleSource(ABC):
    """
    IMPLEMENTATIONS:
    - OhlcvClient (HTTP)
    """

    @abstractmethod
    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        limit: int | None = None,
    ) -> HistoricalCandles:
        """
        Last `limit` candles of a symbol.

        Returns:
            Candles ordered by time ASC.

        Raises:
            HistoricalDataError: the source reported a failure.
        """

    @abstractmethod
    async def fetch_range(
        self,
        symbol: str,
        interval: str,
        from_: int,
        to: int,
    ) -> HistoricalCandles:
        """
        Candles whose time falls in [from_, to] (UTC seconds).

        Raises:
            ValueError: from_/to missing or not ordered.
            HistoricalDataError: the source reported a failure.
        """
