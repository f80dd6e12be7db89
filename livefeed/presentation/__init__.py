"""
LiveFeed – Presentation Layer
===============================
HTTP API and WebSocket relay.

This package contains:
- api/: FastAPI routes and request schemas
- websocket/: browser price relay

DEPENDENCY RULE:
Calls application use cases and the ports they expose; components are
injected at start-up by main.py.
"""

from livefeed.presentation.api.routes import router, init_routes
from livefeed.presentation.websocket.price_relay import PriceRelay

__all__ = [
    "router",
    "init_routes",
    "PriceRelay",
]
