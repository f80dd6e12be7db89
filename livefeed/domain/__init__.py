"""
LiveFeed – Domain Layer
=========================
Pure core of the system. No framework dependencies.

- entities/: Candle
- value_objects/: PriceUpdate, indicator result records
- services/: indicator formulas (scalar and series)
- exceptions/: domain errors

DEPENDENCY RULE:
Nothing here imports from application/, infrastructure/, presentation/ or
any framework.
"""

from livefeed.domain.entities.candle import Candle
from livefeed.domain.value_objects.price_update import PriceUpdate

__all__ = [
    "Candle",
    "PriceUpdate",
]
