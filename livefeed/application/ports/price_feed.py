"""
LiveFeed – Application Port: Price Feed
=========================================
Interface of the shared real-time price source.

Use cases subscribe to prices; infrastructure decides HOW a single upstream
connection is kept alive and fanned out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Mapping

from livefeed.domain.value_objects.price_update import PriceUpdate

PriceSnapshot = Mapping[str, PriceUpdate]

# callback(prices_snapshot, connected)
PriceCallback = Callable[[PriceSnapshot, bool], None]


class IPriceFeed(ABC):
    """
    Reference-counted price subscription.

    IMPLEMENTATIONS:
    - PriceSocketManager (push-connection to the price server)
    """

    @abstractmethod
    def subscribe(self, callback: PriceCallback) -> Callable[[], None]:
        """
        Register `callback`. It is invoked once right away with the current
        snapshot and connectivity flag, then on every state change.

        Returns:
            A handle; calling it deregisters the callback.
        """

    @abstractmethod
    def get_snapshot(self) -> PriceSnapshot:
        """Latest known price per symbol (read-only)."""

    @abstractmethod
    def is_connected(self) -> bool:
        """True while the upstream connection is open."""
