"""Application use cases."""
from livefeed.application.use_cases.calculate_indicators_usecase import CalculateIndicatorsUseCase
from livefeed.application.use_cases.track_live_candles_usecase import TrackLiveCandlesUseCase

__all__ = [
    "CalculateIndicatorsUseCase",
    "TrackLiveCandlesUseCase",
]
