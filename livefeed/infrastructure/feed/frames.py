"""
LiveFeed – Feed wire frames (Pydantic)
========================================
JSON frames exchanged over the price push-connection.

Inbound:
    {"type": "prices", "data": [PriceUpdate, ...]}
    {"type": "pong"}
Outbound:
    {"type": "ping"}

Anything else (bad JSON, unknown type, a prices entry missing a field)
raises MalformedFrameError; the caller logs and drops the frame.
"""

from __future__ import annotations

import json
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from livefeed.domain.exceptions.domain_errors import MalformedFrameError
from livefeed.domain.value_objects.price_update import PriceUpdate

PING_FRAME = json.dumps({"type": "ping"})
PONG_FRAME = json.dumps({"type": "pong"})


class PriceUpdateSchema(BaseModel):
    """One entry of a prices batch (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    symbol: str
    price: float
    change: float
    change_percent: float = Field(alias="changePercent")
    timestamp: int
    volume: Optional[float] = None
    market_cap: Optional[float] = Field(default=None, alias="marketCap")

    def to_domain(self) -> PriceUpdate:
        return PriceUpdate(
            symbol=self.symbol,
            price=self.price,
            change=self.change,
            change_percent=self.change_percent,
            timestamp=self.timestamp,
            volume=self.volume,
            market_cap=self.market_cap,
        )


class PricesFrame(BaseModel):
    type: Literal["prices"]
    data: List[PriceUpdateSchema]

    def updates(self) -> List[PriceUpdate]:
        return [item.to_domain() for item in self.data]


class PongFrame(BaseModel):
    type: Literal["pong"]


FeedFrame = Annotated[Union[PricesFrame, PongFrame], Field(discriminator="type")]

_frame_adapter: TypeAdapter[FeedFrame] = TypeAdapter(FeedFrame)


def parse_frame(raw: str | bytes) -> PricesFrame | PongFrame:
    """Decode one inbound frame."""
    try:
        return _frame_adapter.validate_json(raw)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        reason = errors[0]["msg"] if errors else str(exc)
        raise MalformedFrameError(f"Undecodable feed frame: {reason}", raw=raw) from exc


def prices_frame(updates) -> str:
    """Encode a prices frame (used by the browser relay)."""
    return json.dumps({"type": "prices", "data": [u.to_dict() for u in updates]})
