"""Domain services - pure indicator formulas."""
from livefeed.domain.services.indicator_calculator import IndicatorCalculator
from livefeed.domain.services.indicator_series import IndicatorSeries

__all__ = ["IndicatorCalculator", "IndicatorSeries"]
