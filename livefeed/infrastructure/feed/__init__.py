"""Price feed - shared push-connection, subscriptions and wire frames."""

from livefeed.infrastructure.feed.frames import PricesFrame, PongFrame, parse_frame
from livefeed.infrastructure.feed.price_socket_manager import (
    ConnectionState,
    PriceSocketManager,
    backoff_delay,
)
from livefeed.infrastructure.feed.subscription_registry import (
    Subscription,
    SubscriptionRegistry,
)

__all__ = [
    "ConnectionState",
    "PriceSocketManager",
    "PricesFrame",
    "PongFrame",
    "Subscription",
    "SubscriptionRegistry",
    "backoff_delay",
    "parse_frame",
]
