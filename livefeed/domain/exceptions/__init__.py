"""Domain exceptions."""
from livefeed.domain.exceptions.domain_errors import (
    DomainError,
    HistoricalDataError,
    InvalidCandleError,
    MalformedFrameError,
    UnknownIndicatorError,
)

__all__ = [
    "DomainError",
    "HistoricalDataError",
    "InvalidCandleError",
    "MalformedFrameError",
    "UnknownIndicatorError",
]
