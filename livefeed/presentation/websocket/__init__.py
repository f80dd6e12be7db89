"""Browser-facing websocket relay."""

from livefeed.presentation.websocket.price_relay import PriceRelay, RelayClient

__all__ = ["PriceRelay", "RelayClient"]
