"""Application DTOs - Data Transfer Objects for use cases."""
from livefeed.application.dto.indicator_dto import IndicatorRequest, IndicatorResponse

__all__ = [
    "IndicatorRequest",
    "IndicatorResponse",
]
