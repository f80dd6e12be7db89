"""
LiveFeed – Subscription Registry
==================================
Reference-counted set of subscriber callbacks.

Every subscribe() gets its own token, so registering the same callable
twice counts twice and needs two unsubscribes. The owner is told through
`on_empty` when the last subscription goes away; that is what drives the
feed connection lifecycle.

RE-ENTRANCY:
- snapshot() returns a copied list, so callers can iterate it while
  callbacks subscribe or unsubscribe.
- A subscription removed mid-iteration is skipped by checking is_active()
  before each delivery.
- Unsubscribing twice is a no-op.
"""

from __future__ import annotations

import itertools
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar

C = TypeVar("C", bound=Callable)


class Subscription:
    """Handle returned by subscribe(); call it to unsubscribe."""

    __slots__ = ("_registry", "_token")

    def __init__(self, registry: "SubscriptionRegistry", token: int) -> None:
        self._registry = registry
        self._token = token

    @property
    def token(self) -> int:
        return self._token

    @property
    def active(self) -> bool:
        return self._registry.is_active(self._token)

    def unsubscribe(self) -> bool:
        """Remove the callback. Returns False if it was already removed."""
        return self._registry.remove(self._token)

    def __call__(self) -> None:
        self.unsubscribe()


class SubscriptionRegistry(Generic[C]):
    """Ordered token → callback map with an empty-registry hook."""

    def __init__(self, on_empty: Optional[Callable[[], None]] = None) -> None:
        self._callbacks: Dict[int, C] = {}
        self._tokens = itertools.count(1)
        self._on_empty = on_empty

    def add(self, callback: C) -> Subscription:
        token = next(self._tokens)
        self._callbacks[token] = callback
        return Subscription(self, token)

    def remove(self, token: int) -> bool:
        if self._callbacks.pop(token, None) is None:
            return False
        if not self._callbacks and self._on_empty is not None:
            self._on_empty()
        return True

    def is_active(self, token: int) -> bool:
        return token in self._callbacks

    def snapshot(self) -> List[Tuple[int, C]]:
        """Copy of the current (token, callback) pairs, in subscription order."""
        return list(self._callbacks.items())

    def clear(self) -> None:
        """Drop every subscription without firing on_empty."""
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)

    def __bool__(self) -> bool:
        return bool(self._callbacks)
