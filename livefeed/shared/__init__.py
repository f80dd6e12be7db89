"""
LiveFeed – Shared Module
==========================
Cross-cutting helpers used by every layer.

- config/: Settings
- logging/: logging setup

No business logic lives here.
"""

from livefeed.shared.config.settings import settings
from livefeed.shared.logging.logger import setup_logging, get_logger

__all__ = [
    "settings",
    "setup_logging",
    "get_logger",
]
