"""Application ports - Interfaces to infrastructure."""
from livefeed.application.ports.market_data_provider import (
    HistoricalCandles,
    IHistoricalCandleSource,
)
from livefeed.application.ports.price_feed import IPriceFeed, PriceCallback, PriceSnapshot

__all__ = [
    "HistoricalCandles",
    "IHistoricalCandleSource",
    "IPriceFeed",
    "PriceCallback",
    "PriceSnapshot",
]
