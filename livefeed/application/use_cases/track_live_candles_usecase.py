"""
Track Live Candles Use Case.

Folds every price snapshot of the shared feed into the Candle Store, so the
forming candle of each configured interval follows the live price.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from livefeed.application.ports.price_feed import IPriceFeed, PriceSnapshot
from livefeed.shared.logging.logger import get_logger
from livefeed.state.candle_store import CandleStore, interval_seconds

logger = get_logger("live_candles")


class TrackLiveCandlesUseCase:
    """One feed subscription for as long as the use case runs."""

    def __init__(self, feed: IPriceFeed, store: CandleStore, intervals: Sequence[str]) -> None:
        # Fail early on a bad interval rather than on the first price
        for interval in intervals:
            interval_seconds(interval)
        self._feed = feed
        self._store = store
        self._intervals: List[str] = list(intervals)
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._last_seen: dict[str, int] = {}
        self.updates_applied = 0

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self._unsubscribe is not None or not self._intervals:
            return
        self._unsubscribe = self._feed.subscribe(self._on_prices)
        logger.info("Tracking live candles for intervals %s", self._intervals)

    def stop(self) -> None:
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        unsubscribe()
        logger.info("Live candle tracking stopped (%d updates applied)", self.updates_applied)

    def _on_prices(self, prices: PriceSnapshot, connected: bool) -> None:
        for symbol, update in prices.items():
            # The snapshot is re-delivered on every connectivity change
            if self._last_seen.get(symbol) == update.timestamp:
                continue
            self._last_seen[symbol] = update.timestamp
            for interval in self._intervals:
                self._store.apply_price(update, interval)
            self.updates_applied += 1
