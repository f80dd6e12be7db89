"""
LiveFeed – Main Application Entry Point
=========================================
Wires the price feed, candle store, indicator channel and HTTP surface.

START-UP:
  1. Configure logging
  2. Build components from the container
  3. FastAPI lifespan:
     a. inject components into the routes
     b. start the indicator channel (response pump)
     c. start live candle tracking (first feed subscriber)
  4. Shutdown in reverse order

DATA FLOW:
  price server WS → PriceSocketManager ─┬→ PriceRelay → browsers (/ws/prices)
                                        └→ TrackLiveCandlesUseCase → CandleStore
  OHLCV REST → OhlcvClient → CandleStore
  CandleStore / request body → CalculateIndicatorsUseCase → IndicatorWorker (pool)

  uvicorn livefeed.main:app --host 0.0.0.0 --port 8888
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from livefeed import __version__
from livefeed.container import Container, init_container
from livefeed.presentation.api.routes import init_routes, router
from livefeed.shared.logging.logger import get_logger, setup_logging

logger = get_logger("main")


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Build the FastAPI app around a container (the global one by default)."""
    container = container or init_container()
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        logger.info("=" * 60)
        logger.info("  LiveFeed v%s", __version__)
        logger.info("  Feed: %s", settings.feed_ws_url)
        logger.info("  OHLCV API: %s", settings.ohlcv_api_url)
        logger.info("  Backoff: %.1fs → %.1fs, heartbeat %.0fs (pong timeout %.0fs)",
                    settings.feed_reconnect_base_delay, settings.feed_reconnect_max_delay,
                    settings.feed_heartbeat_interval, settings.feed_pong_timeout)
        logger.info("  Indicators: %s pool x%d",
                    settings.indicator_executor, settings.indicator_max_workers)
        logger.info("  Live candle intervals: %s",
                    ", ".join(settings.live_candle_intervals) or "(none)")
        logger.info("=" * 60)

        init_routes(
            container.price_feed,
            container.candle_store,
            container.indicator_usecase,
            historical=container.historical_source,
            price_relay=container.price_relay,
            indicator_worker=container.indicator_worker,
        )
        await container.indicator_usecase.start()
        container.live_candles.start()
        logger.info("✓ All components started")

        yield

        # ── SHUTDOWN ──
        logger.info("Shutting down...")
        container.live_candles.stop()
        await container.indicator_usecase.stop()
        await container.price_feed.aclose()
        container.indicator_worker.shutdown()
        await container.historical_source.aclose()
        logger.info("✓ Shutdown complete")

    app = FastAPI(
        title="LiveFeed",
        description="Real-time price distribution and technical indicator service",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS for the local dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()
