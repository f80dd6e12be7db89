"""Domain entities."""
from livefeed.domain.entities.candle import Candle, coerce_candles

__all__ = ["Candle", "coerce_candles"]
