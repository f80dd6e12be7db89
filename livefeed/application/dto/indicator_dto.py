"""
LiveFeed – Application DTO: Indicator computation
===================================================
Messages of the indicator computation channel.

    request  {kind, candles, params, request_id}
    response {kind, data, request_id, calc_time, error?}

Both cross a process boundary, so they only hold picklable plain data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence


@dataclass(frozen=True, slots=True)
class IndicatorRequest:
    """One computation request. `candles` holds Candle objects or wire dicts."""

    kind: str
    candles: Sequence[Any]
    request_id: str
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndicatorRequest":
        return cls(
            kind=data["kind"],
            candles=data.get("candles", []),
            request_id=data.get("request_id") or data.get("requestId", ""),
            params=data.get("params") or {},
        )


@dataclass(frozen=True, slots=True)
class IndicatorResponse:
    """Result of one request; `data` is None when `error` is set."""

    kind: str
    data: Any
    request_id: str
    calc_time: float
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "kind": self.kind,
            "data": self.data,
            "request_id": self.request_id,
            "calc_time": round(self.calc_time, 3),
        }
        if self.error is not None:
            result["error"] = self.error
        return result
