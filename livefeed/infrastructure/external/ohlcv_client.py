"""
LiveFeed – OHLCV REST Client
==============================
Historical candles from the price server's REST endpoints.

    GET /api/ohlcv/{symbol}/{interval}?limit=N
    GET /api/ohlcv/{symbol}/{interval}/range?from=<utc s>&to=<utc s>

Both answer:
    {"success": bool, "data": [Candle, ...],
     "meta": {"symbol", "interval", "count", "fetchTime", "from"?, "to"?},
     "error"?: str}

A non-2xx status, `success: false`, a transport failure or an unreadable
body all raise HistoricalDataError.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from livefeed.application.ports.market_data_provider import (
    HistoricalCandles,
    IHistoricalCandleSource,
)
from livefeed.domain.entities.candle import Candle
from livefeed.domain.exceptions.domain_errors import HistoricalDataError, InvalidCandleError
from livefeed.shared.config.settings import settings
from livefeed.shared.logging.logger import get_logger

logger = get_logger("ohlcv_client")


class OhlcvClient(IHistoricalCandleSource):
    """
    httpx-based historical candle source.

    Pass `client` to reuse an AsyncClient (tests inject one built on
    httpx.MockTransport); otherwise one is created on first use.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        default_limit: int | None = None,
        max_limit: int | None = None,
    ) -> None:
        self._base_url = (base_url or settings.ohlcv_api_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.ohlcv_request_timeout
        self._default_limit = default_limit or settings.ohlcv_default_limit
        self._max_limit = max_limit or settings.ohlcv_max_limit
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        limit: int | None = None,
    ) -> HistoricalCandles:
        limit = limit or self._default_limit
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        if limit > self._max_limit:
            logger.debug("limit %d clamped to %d", limit, self._max_limit)
            limit = self._max_limit

        return await self._request(self._path(symbol, interval), {"limit": limit})

    async def fetch_range(
        self,
        symbol: str,
        interval: str,
        from_: int,
        to: int,
    ) -> HistoricalCandles:
        if from_ is None or to is None:
            raise ValueError("Both 'from' and 'to' are required (UTC seconds)")
        if from_ >= to:
            raise ValueError(f"'from' ({from_}) must be earlier than 'to' ({to})")

        return await self._request(
            self._path(symbol, interval) + "/range",
            {"from": int(from_), "to": int(to)},
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ──────────────────────── Internals ─────────────────────────────────

    def _path(self, symbol: str, interval: str) -> str:
        return f"{self._base_url}/api/ohlcv/{quote(symbol, safe='')}/{quote(interval, safe='')}"

    async def _request(self, url: str, params: Dict[str, Any]) -> HistoricalCandles:
        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise HistoricalDataError(f"OHLCV request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = _error_message(body) or response.reason_phrase
            raise HistoricalDataError(
                f"OHLCV endpoint answered {response.status_code}: {message}",
                status_code=response.status_code,
            )
        if not isinstance(body, dict):
            raise HistoricalDataError("OHLCV endpoint returned an unreadable body",
                                      status_code=response.status_code)
        if not body.get("success", False):
            raise HistoricalDataError(
                _error_message(body) or "OHLCV endpoint reported failure",
                status_code=response.status_code,
            )

        candles = _decode_candles(body.get("data") or [])
        meta = dict(body.get("meta") or {})
        logger.info("Fetched %d candles for %s/%s",
                    len(candles), meta.get("symbol", "?"), meta.get("interval", "?"))
        return HistoricalCandles(candles=candles, meta=meta)


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        return body.get("error") or body.get("message")
    return None


def _decode_candles(items: List[Dict[str, Any]]) -> List[Candle]:
    """Wire candles → ordered list; a repeated time keeps the last one."""
    try:
        by_time = {c.time: c for c in (Candle.from_dict(item) for item in items)}
    except InvalidCandleError as e:
        raise HistoricalDataError(e.message) from e
    return [by_time[t] for t in sorted(by_time)]
