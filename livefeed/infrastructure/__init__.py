"""
LiveFeed – Infrastructure Layer
=================================
Concrete implementations of the application ports.

This package contains:
- feed/: shared websocket to the price server (PriceSocketManager)
- workers/: executor-backed indicator computation channel
- external/: REST client for historical candles

DEPENDENCY RULE:
Implements the interfaces in application/ports/.
May import from domain/, application/ (ports, dto) and shared/.
"""
