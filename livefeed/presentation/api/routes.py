"""
LiveFeed – API Routes (FastAPI)
=================================
REST and WebSocket endpoints for the dashboard.

Endpoints:
  WS   /ws/prices                         → live prices (relay of the shared feed)
  GET  /api/health                        → health check
  GET  /api/status                        → feed, store, worker and relay state
  GET  /api/prices                        → latest price per symbol
  GET  /api/candles/{symbol}/{interval}   → candle history (store, else OHLCV API)
  POST /api/indicators/{kind}             → one indicator computation
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query, WebSocket

from livefeed.domain.entities.candle import Candle
from livefeed.domain.exceptions.domain_errors import HistoricalDataError
from livefeed.presentation.api.schemas import IndicatorRequestBody
from livefeed.shared.logging.logger import get_logger
from livefeed.state.candle_store import interval_seconds

logger = get_logger("api.routes")

router = APIRouter()

# Components injected from main.py
_price_feed = None
_candle_store = None
_indicators = None
_historical = None
_price_relay = None
_indicator_worker = None


def init_routes(
    price_feed,
    candle_store,
    indicators,
    historical=None,
    price_relay=None,
    indicator_worker=None,
) -> None:
    """Inject dependencies from main.py at start-up."""
    global _price_feed, _candle_store, _indicators
    global _historical, _price_relay, _indicator_worker
    _price_feed = price_feed
    _candle_store = candle_store
    _indicators = indicators
    _historical = historical
    _price_relay = price_relay
    _indicator_worker = indicator_worker


async def _load_candles(symbol: str, interval: str, limit: int) -> tuple[List[Candle], str]:
    """
    Candles from the store, back-filled once from the OHLCV API.

    Live tracking may already hold the forming candle, so a short series
    without history is still back-filled.
    """
    candles = _candle_store.get(symbol, interval, limit)
    if (
        _historical is None
        or len(candles) >= limit
        or _candle_store.has_history(symbol, interval)
    ):
        return candles, "store"

    result = await _historical.fetch_candles(symbol, interval, limit)
    _candle_store.merge(symbol, interval, result.candles, history=True)
    return _candle_store.get(symbol, interval, limit), "ohlcv"


# ─── WebSocket endpoint ────────────────────────────────────────────────

@router.websocket("/ws/prices")
async def price_stream(websocket: WebSocket) -> None:
    """
    Browser clients connect here for live prices. Every connection is one
    subscriber of the shared feed; PriceRelay handles the frames.
    """
    if _price_relay is None:
        await websocket.close(code=1011, reason="Server not ready")
        return
    await _price_relay.serve(websocket)


# ─── REST endpoints ────────────────────────────────────────────────────

@router.get("/api/health")
async def health_check() -> dict:
    """Health check for monitoring."""
    return {"status": "ok", "service": "livefeed"}


@router.get("/api/status")
async def system_status() -> dict:
    return {
        "price_feed": _price_feed.stats if _price_feed is not None else {},
        "candle_store": _candle_store.snapshot() if _candle_store is not None else {},
        "indicator_worker": _indicator_worker.stats if _indicator_worker is not None else {},
        "pending_indicators": _indicators.pending_count if _indicators is not None else 0,
        "ws_clients": _price_relay.client_count if _price_relay is not None else 0,
    }


@router.get("/api/prices")
async def get_prices() -> dict:
    """Latest known price per symbol plus the connectivity flag."""
    if _price_feed is None:
        return {"error": "Server not ready", "connected": False, "prices": {}}

    snapshot = _price_feed.get_snapshot()
    return {
        "connected": _price_feed.is_connected(),
        "prices": {symbol: update.to_dict() for symbol, update in snapshot.items()},
    }


@router.get("/api/candles/{symbol}/{interval}")
async def get_candles(
    symbol: str,
    interval: str,
    limit: int = Query(default=500, ge=1, le=1000),
    from_: Optional[int] = Query(default=None, alias="from", description="UTC seconds"),
    to: Optional[int] = Query(default=None, description="UTC seconds"),
) -> dict:
    """Candle history of one symbol; `from`/`to` request a range from the OHLCV API."""
    if _candle_store is None:
        return {"error": "Server not ready", "candles": []}

    try:
        interval_seconds(interval)
    except ValueError as e:
        return {"error": str(e), "candles": []}

    try:
        if from_ is not None or to is not None:
            if _historical is None:
                return {"error": "Historical source not configured", "candles": []}
            result = await _historical.fetch_range(symbol, interval, from_, to)
            _candle_store.merge(symbol, interval, result.candles)
            candles, source = result.candles, "ohlcv"
        else:
            candles, source = await _load_candles(symbol, interval, limit)
    except (ValueError, HistoricalDataError) as e:
        logger.warning("Candle request for %s/%s failed: %s", symbol, interval, e)
        return {"error": str(e), "candles": []}

    return {
        "symbol": symbol,
        "interval": interval,
        "count": len(candles),
        "source": source,
        "candles": [c.to_dict() for c in candles],
    }


@router.post("/api/indicators/{kind}")
async def calculate_indicator(kind: str, body: IndicatorRequestBody) -> dict:
    """
    Compute one indicator off the event loop.

    Answers {kind, data, request_id, calc_time, error?}; insufficient
    history gives data=null, not an error.
    """
    if _indicators is None:
        return {"kind": kind, "data": None, "error": "Server not ready"}

    if body.candles is not None:
        candles = [c.model_dump() for c in body.candles]
    else:
        if _candle_store is None:
            return {"kind": kind, "data": None, "error": "Server not ready"}
        try:
            candles, _ = await _load_candles(body.symbol, body.interval, body.limit)
        except HistoricalDataError as e:
            return {"kind": kind, "data": None, "error": e.message}

    response = await _indicators.execute(kind, candles, body.params)
    return response.to_dict()
