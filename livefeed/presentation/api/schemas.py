"""
Request bodies of the REST API (Pydantic).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class CandleSchema(BaseModel):
    time: int = Field(description="Bucket open, UTC seconds")
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class IndicatorRequestBody(BaseModel):
    """
    Body of POST /api/indicators/{kind}.

    Either inline `candles`, or a `symbol` + `interval` whose candles are
    taken from the store (fetched from the OHLCV API when the store is empty).
    """

    candles: Optional[List[CandleSchema]] = None
    symbol: Optional[str] = None
    interval: Optional[str] = None
    limit: int = Field(default=500, ge=1, le=1000)
    params: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _candles_or_series(self) -> "IndicatorRequestBody":
        if self.candles is None and not (self.symbol and self.interval):
            raise ValueError("Provide either 'candles' or both 'symbol' and 'interval'")
        return self
