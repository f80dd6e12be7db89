"""
LiveFeed – Domain Exceptions
==============================
Errors of the market-data domain.

HIERARCHY:
    DomainError (base)
    ├── MalformedFrameError
    ├── InvalidCandleError
    ├── UnknownIndicatorError
    └── HistoricalDataError

Transport faults are deliberately absent: the feed manager turns them into
a connectivity flag and never raises them to callers.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class MalformedFrameError(DomainError):
    """Inbound feed frame that cannot be decoded or has an unknown type."""

    def __init__(self, message: str, raw: str | bytes | None = None):
        super().__init__(message, code="MALFORMED_FRAME")
        self.raw = raw


class InvalidCandleError(DomainError):
    """Candle payload missing fields or out of order."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_CANDLE")


class UnknownIndicatorError(DomainError):
    """Indicator kind not supported by the engine."""

    def __init__(self, message: str, kind: str | None = None):
        super().__init__(message, code="UNKNOWN_INDICATOR")
        self.kind = kind


class HistoricalDataError(DomainError):
    """The historical candle source answered with a failure."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, code="HISTORICAL_DATA_ERROR")
        self.status_code = status_code
