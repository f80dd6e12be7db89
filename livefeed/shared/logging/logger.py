"""
LiveFeed – Logging configuration
==================================
Human-readable pipe-separated format on stdout, configured once at start-up.
"""

from __future__ import annotations

import logging
import sys


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure the root logger once at start-up."""
    fmt = (
        "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    # Calling twice must not duplicate handlers
    if not root.handlers:
        root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    # Quiet noisy libraries
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger factory with the project namespace prefixed."""
    return logging.getLogger(f"livefeed.{name}")
