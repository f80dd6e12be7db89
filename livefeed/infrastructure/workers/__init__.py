"""Isolated execution of indicator computations."""

from livefeed.infrastructure.workers.indicator_worker import (
    INDICATOR_KINDS,
    IndicatorWorker,
    handle_request,
)

__all__ = [
    "INDICATOR_KINDS",
    "IndicatorWorker",
    "handle_request",
]
