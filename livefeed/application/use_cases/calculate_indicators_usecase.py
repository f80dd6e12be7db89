"""
LiveFeed – Use Case: Calculate Indicators
===========================================
Awaitable front-end of the indicator computation channel.

    response = await usecase.execute("rsi", candles, {"period": 14})

Each call gets a fresh UUID request_id and a future parked in `_pending`.
A pump task reads responses off the worker in whatever order they finish
and resolves the future with the matching id. A response whose id is no
longer pending (the caller was cancelled) is dropped.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, Optional, Protocol, Sequence

from livefeed.application.dto.indicator_dto import IndicatorRequest, IndicatorResponse
from livefeed.shared.logging.logger import get_logger

logger = get_logger("calculate_indicators")


class IndicatorChannel(Protocol):
    def post(self, request: IndicatorRequest) -> None: ...

    async def get_response(self) -> IndicatorResponse: ...


class CalculateIndicatorsUseCase:
    """Correlates indicator responses to their requests by request_id."""

    def __init__(self, worker: IndicatorChannel) -> None:
        self._worker = worker
        self._pending: Dict[str, asyncio.Future[IndicatorResponse]] = {}
        self._pump_task: Optional[asyncio.Task] = None
        self._discarded = 0

    async def start(self) -> None:
        if self._pump_task is not None and not self._pump_task.done():
            return
        self._pump_task = asyncio.create_task(self._pump(), name="indicator-pump")
        logger.info("Indicator channel started")

    async def stop(self) -> None:
        if self._pump_task is not None:
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            self._pump_task = None

        for future in self._pending.values():
            if not future.done():
                future.cancel()
        self._pending.clear()
        logger.info("Indicator channel stopped")

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def discarded_count(self) -> int:
        return self._discarded

    async def execute(
        self,
        kind: str,
        candles: Sequence[Any],
        params: Dict[str, Any] | None = None,
    ) -> IndicatorResponse:
        """
        Compute one indicator off the event loop.

        Args:
            kind: ema, sma, rsi, macd, vwap, bollinger, stochastic, obv or all
            candles: Candle objects or wire dicts, oldest first
            params: periods etc.; {"series": True} for the time-aligned form

        Returns:
            The response for this request. Failures are carried in
            `response.error`, never raised.
        """
        if self._pump_task is None:
            await self.start()

        request_id = str(uuid.uuid4())
        future: asyncio.Future[IndicatorResponse] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        request = IndicatorRequest(
            kind=kind,
            candles=list(candles),
            request_id=request_id,
            params=dict(params or {}),
        )
        try:
            self._worker.post(request)
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def _pump(self) -> None:
        while True:
            response = await self._worker.get_response()
            future = self._pending.get(response.request_id)
            if future is None or future.done():
                self._discarded += 1
                logger.debug("Discarding response for unknown request %s", response.request_id)
                continue
            future.set_result(response)
