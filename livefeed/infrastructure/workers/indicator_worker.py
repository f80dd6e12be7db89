"""
LiveFeed – Indicator Worker
=============================
Runs indicator computations in an isolated executor so they never block
the event loop that delivers prices.

CHANNEL:
- post(request) hands one IndicatorRequest to the pool and returns at once.
- get_response() yields IndicatorResponses in completion order, which is
  NOT request order; callers correlate by request_id.

ERROR BOUNDARY:
- handle_request() never raises. Bad candles, unknown kinds, invalid
  params and numeric failures all come back as a response with `error`
  set, so one failed computation never disturbs the next.
- A crash of the executor itself (e.g. a broken process pool), or a submit
  it refuses, is also turned into an error response for that request. An
  owned executor that broke is replaced, so the next request runs again.

handle_request() is a module-level function so ProcessPoolExecutor can
pickle it.
"""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import (
    BrokenExecutor,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
)
from typing import Any, Callable, Dict, List, Optional

from livefeed.application.dto.indicator_dto import IndicatorRequest, IndicatorResponse
from livefeed.domain.entities.candle import Candle, coerce_candles
from livefeed.domain.exceptions.domain_errors import DomainError, UnknownIndicatorError
from livefeed.domain.services.indicator_calculator import IndicatorCalculator
from livefeed.domain.services.indicator_series import IndicatorSeries
from livefeed.domain.value_objects.indicator_values import IndicatorSnapshot
from livefeed.shared.config.settings import settings
from livefeed.shared.logging.logger import get_logger

logger = get_logger("indicator_worker")

Params = Dict[str, Any]


# ════════════════════════════════════════════════════════════════════
#  Computation (runs inside the executor)
# ════════════════════════════════════════════════════════════════════

def _int_param(params: Params, name: str, default: int) -> int:
    value = params.get(name, default)
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be a whole number, got {value!r}")
    return int(value)


def _float_param(params: Params, name: str, default: float) -> float:
    value = params.get(name, default)
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be a number, got {value!r}")
    return float(value)


def _wants_series(params: Params) -> bool:
    return bool(params.get("series", False))


def _plain(value: Any) -> Any:
    """Result record → JSON-ready dict, floats and None unchanged."""
    if value is None or isinstance(value, float):
        return value
    return value.to_dict()


def _points(series) -> List[dict]:
    points = []
    for t, value in series:
        if isinstance(value, float):
            points.append({"time": t, "value": value})
        else:
            points.append({"time": t, **value.to_dict()})
    return points


def _sma(candles: List[Candle], params: Params) -> Any:
    period = _int_param(params, "period", 20)
    if _wants_series(params):
        return _points(IndicatorSeries.sma(candles, period))
    return IndicatorCalculator.sma(candles, period)


def _ema(candles: List[Candle], params: Params) -> Any:
    period = _int_param(params, "period", 20)
    if _wants_series(params):
        return _points(IndicatorSeries.ema(candles, period))
    return IndicatorCalculator.ema(candles, period)


def _rsi(candles: List[Candle], params: Params) -> Any:
    period = _int_param(params, "period", 14)
    if _wants_series(params):
        return _points(IndicatorSeries.rsi(candles, period))
    return IndicatorCalculator.rsi(candles, period)


def _macd(candles: List[Candle], params: Params) -> Any:
    fast = _int_param(params, "fast", 12)
    slow = _int_param(params, "slow", 26)
    signal = _int_param(params, "signal", 9)
    if _wants_series(params):
        return _points(IndicatorSeries.macd(candles, fast, slow, signal))
    return _plain(IndicatorCalculator.macd(candles, fast, slow, signal))


def _vwap(candles: List[Candle], params: Params) -> Any:
    if _wants_series(params):
        raise ValueError("vwap has no series form")
    return IndicatorCalculator.vwap(candles)


def _bollinger(candles: List[Candle], params: Params) -> Any:
    period = _int_param(params, "period", 20)
    mult = _float_param(params, "std_dev_mult", 2.0)
    if _wants_series(params):
        return _points(IndicatorSeries.bollinger(candles, period, mult))
    return _plain(IndicatorCalculator.bollinger(candles, period, mult))


def _stochastic(candles: List[Candle], params: Params) -> Any:
    k_period = _int_param(params, "k_period", 14)
    d_period = _int_param(params, "d_period", 3)
    if _wants_series(params):
        return _points(IndicatorSeries.stochastic(candles, k_period, d_period))
    return _plain(IndicatorCalculator.stochastic(candles, k_period, d_period))


def _obv(candles: List[Candle], params: Params) -> Any:
    if _wants_series(params):
        return _points(IndicatorSeries.obv(candles))
    return IndicatorCalculator.obv(candles)


# Series mode of "all" mirrors the chart panels that consume it
_ALL_SERIES = ("rsi", "macd", "bollinger", "stochastic")


def _all(candles: List[Candle], params: Params) -> Any:
    nested = {
        name: dict(params.get(name) or {})
        for name in ("ema", "rsi", "macd", "bollinger", "stochastic")
    }
    if _wants_series(params):
        return {
            name: _COMPUTE[name](candles, {**nested[name], "series": True})
            for name in _ALL_SERIES
        }
    if not any(nested.values()):
        return IndicatorCalculator.calculate_all(candles).to_dict()

    return IndicatorSnapshot(
        ema=_ema(candles, nested["ema"]),
        rsi=_rsi(candles, nested["rsi"]),
        macd=IndicatorCalculator.macd(
            candles,
            _int_param(nested["macd"], "fast", 12),
            _int_param(nested["macd"], "slow", 26),
            _int_param(nested["macd"], "signal", 9),
        ),
        vwap=IndicatorCalculator.vwap(candles),
        bollinger=IndicatorCalculator.bollinger(
            candles,
            _int_param(nested["bollinger"], "period", 20),
            _float_param(nested["bollinger"], "std_dev_mult", 2.0),
        ),
        stochastic=IndicatorCalculator.stochastic(
            candles,
            _int_param(nested["stochastic"], "k_period", 14),
            _int_param(nested["stochastic"], "d_period", 3),
        ),
    ).to_dict()


_COMPUTE: Dict[str, Callable[[List[Candle], Params], Any]] = {
    "sma": _sma,
    "ema": _ema,
    "rsi": _rsi,
    "macd": _macd,
    "vwap": _vwap,
    "bollinger": _bollinger,
    "stochastic": _stochastic,
    "obv": _obv,
    "all": _all,
}

INDICATOR_KINDS = frozenset(_COMPUTE)


def handle_request(request: IndicatorRequest) -> IndicatorResponse:
    """Compute one request. Never raises; failures become `error`."""
    started = time.perf_counter()
    data: Any = None
    error: Optional[str] = None
    try:
        compute = _COMPUTE.get(request.kind)
        if compute is None:
            raise UnknownIndicatorError(f"Unknown indicator kind: {request.kind!r}", kind=request.kind)
        candles = coerce_candles(request.candles)
        data = compute(candles, dict(request.params or {}))
    except DomainError as e:
        error = e.message
    except Exception as e:
        error = f"{type(e).__name__}: {e}"

    return IndicatorResponse(
        kind=request.kind,
        data=data,
        request_id=request.request_id,
        calc_time=(time.perf_counter() - started) * 1000,
        error=error,
    )


# ════════════════════════════════════════════════════════════════════
#  Channel (runs on the event loop)
# ════════════════════════════════════════════════════════════════════

def create_executor(kind: str, max_workers: int) -> Executor:
    if kind == "process":
        return ProcessPoolExecutor(max_workers=max_workers)
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="indicator")
    raise ValueError(f"indicator executor must be 'process' or 'thread', got {kind!r}")


class IndicatorWorker:
    """
    Request/response channel over an executor.

    The executor is created from settings unless one is injected; an
    injected executor is left running on shutdown().
    """

    def __init__(
        self,
        executor: Executor | None = None,
        *,
        handler: Callable[[IndicatorRequest], IndicatorResponse] = handle_request,
        kind: str | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._kind = kind or settings.indicator_executor
        self._max_workers = max_workers or settings.indicator_max_workers
        self._owns_executor = executor is None
        self._executor = executor or create_executor(self._kind, self._max_workers)
        self._handler = handler
        self._responses: asyncio.Queue[IndicatorResponse] = asyncio.Queue()

        self._posted = 0
        self._completed = 0
        self._failed = 0

    def post(self, request: IndicatorRequest) -> None:
        """Submit a request; its response shows up in get_response()."""
        loop = asyncio.get_running_loop()
        executor = self._executor
        self._posted += 1
        try:
            future = executor.submit(self._handler, request)
        except RuntimeError as e:
            # Shut down, or broken by a crashed worker process
            logger.error("Indicator executor rejected %s (%s): %s",
                         request.kind, request.request_id, e)
            self._replace_if_broken(executor, e)
            loop.call_soon(self._finish, request, self._failure(request, f"Worker failure: {e}"))
            return
        future.add_done_callback(
            lambda f: loop.call_soon_threadsafe(self._on_done, request, executor, f)
        )

    def _on_done(self, request: IndicatorRequest, executor: Executor, future: Future) -> None:
        if future.cancelled():
            response = self._failure(request, "Computation cancelled")
        elif future.exception() is not None:
            exc = future.exception()
            logger.error("Indicator executor failed for %s (%s): %s",
                         request.kind, request.request_id, exc, exc_info=exc)
            self._replace_if_broken(executor, exc)
            response = self._failure(request, f"Worker failure: {exc}")
        else:
            response = future.result()
        self._finish(request, response)

    def _finish(self, request: IndicatorRequest, response: IndicatorResponse) -> None:
        self._completed += 1
        if not response.ok:
            self._failed += 1
            logger.debug("Indicator %s (%s) failed: %s",
                         request.kind, request.request_id, response.error)
        self._responses.put_nowait(response)

    def _replace_if_broken(self, executor: Executor, exc: BaseException) -> None:
        if not isinstance(exc, BrokenExecutor) or not self._owns_executor:
            return
        if executor is not self._executor:
            return
        logger.warning("Indicator executor is broken, starting a new %s pool", self._kind)
        executor.shutdown(wait=False, cancel_futures=True)
        self._executor = create_executor(self._kind, self._max_workers)

    @staticmethod
    def _failure(request: IndicatorRequest, message: str) -> IndicatorResponse:
        return IndicatorResponse(
            kind=request.kind,
            data=None,
            request_id=request.request_id,
            calc_time=0.0,
            error=message,
        )

    async def get_response(self) -> IndicatorResponse:
        return await self._responses.get()

    @property
    def stats(self) -> dict:
        return {
            "executor": self._kind if self._owns_executor else type(self._executor).__name__,
            "max_workers": self._max_workers,
            "posted": self._posted,
            "completed": self._completed,
            "failed": self._failed,
            "in_flight": self._posted - self._completed,
        }

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
            logger.info("Indicator executor shut down")
