"""
LiveFeed – Settings (Pydantic BaseSettings)
=============================================
Centralised configuration loaded from environment variables / .env.
pydantic-settings validates everything once at start-up.

Every component also takes explicit constructor overrides, so tests
never have to touch the environment.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List


class Settings(BaseSettings):
    # ─── Price feed (push connection) ───────────────────────────────────
    feed_ws_url: str = Field(
        default="ws://localhost:5000/ws/prices",
        description="WebSocket endpoint of the price feed",
    )
    feed_reconnect_base_delay: float = Field(
        default=1.0, description="Base delay (s) for exponential backoff"
    )
    feed_reconnect_max_delay: float = Field(
        default=8.0, description="Cap (s) for the reconnect delay"
    )
    feed_heartbeat_interval: float = Field(
        default=30.0, description="Interval (s) between liveness pings"
    )
    feed_pong_timeout: float = Field(
        default=5.0, description="Seconds to wait for a pong before forcing a reconnect"
    )
    feed_close_timeout: float = Field(
        default=5.0, description="Graceful close handshake timeout (s)"
    )
    feed_max_frame_size: int = Field(
        default=2**20, description="Largest inbound frame accepted (bytes)"
    )

    # ─── Historical candles (REST) ──────────────────────────────────────
    ohlcv_api_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the /api/ohlcv endpoints",
    )
    ohlcv_default_limit: int = Field(default=500, description="Default candle count")
    ohlcv_max_limit: int = Field(
        default=1000, description="Server-side maximum, larger limits are clamped"
    )
    ohlcv_request_timeout: float = Field(default=10.0, description="HTTP timeout (s)")

    # ─── Candle Store ───────────────────────────────────────────────────
    max_candles_buffer: int = Field(
        default=1000, description="Candles kept per (symbol, interval)"
    )
    live_candle_intervals: List[str] = Field(
        default=[],
        description="Intervals updated from live prices (e.g. ['1', '5'])",
    )

    # ─── Indicator computation ──────────────────────────────────────────
    indicator_executor: str = Field(
        default="process", description="'process' or 'thread' worker pool"
    )
    indicator_max_workers: int = Field(default=2, description="Worker pool size")

    # ─── Price relay (browser clients) ──────────────────────────────────
    relay_queue_size: int = Field(
        default=256, description="Outbound frames buffered per relay client"
    )

    # ─── Server ─────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8888)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Process-wide instance, import it where needed
settings = Settings()
