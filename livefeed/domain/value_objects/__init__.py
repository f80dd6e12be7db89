"""Domain value objects."""
from livefeed.domain.value_objects.price_update import PriceUpdate
from livefeed.domain.value_objects.indicator_values import (
    BollingerBands,
    IndicatorSnapshot,
    MacdResult,
    StochasticResult,
)

__all__ = [
    "PriceUpdate",
    "BollingerBands",
    "IndicatorSnapshot",
    "MacdResult",
    "StochasticResult",
]
