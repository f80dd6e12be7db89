"""
LiveFeed – Domain Value Object: PriceUpdate
=============================================
Latest quote for one symbol as pushed by the price feed.

- frozen=True → safe to hand the same object to every subscriber.
- slots=True  → small footprint, a snapshot holds one per symbol.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """Price tick for one symbol."""

    symbol: str             # e.g. "BTC"
    price: float
    change: float
    change_percent: float
    timestamp: int          # ms epoch
    volume: float | None = None
    market_cap: float | None = None

    def to_dict(self) -> dict:
        """Wire form (camelCase, as the feed sends it)."""
        data = {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "timestamp": self.timestamp,
        }
        if self.volume is not None:
            data["volume"] = self.volume
        if self.market_cap is not None:
            data["marketCap"] = self.market_cap
        return data
