"""
LiveFeed – Application Layer
==============================
Use cases and orchestration.

This package contains:
- use_cases/: orchestrators over the domain
- ports/: interfaces towards infrastructure
- dto/: messages of the indicator computation channel

DEPENDENCY RULE:
May import from domain/, state/, shared/ and its own ports.
Must NOT import from infrastructure/ or presentation/.
"""

from livefeed.application.use_cases.calculate_indicators_usecase import CalculateIndicatorsUseCase
from livefeed.application.use_cases.track_live_candles_usecase import TrackLiveCandlesUseCase

__all__ = [
    "CalculateIndicatorsUseCase",
    "TrackLiveCandlesUseCase",
]
