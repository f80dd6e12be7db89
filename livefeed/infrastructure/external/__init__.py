"""External systems - historical candle API."""

from livefeed.infrastructure.external.ohlcv_client import OhlcvClient

__all__ = [
    "OhlcvClient",
]
