"""
Dependency Injection Container.

The only place where concrete components are created. Every property
builds its component lazily from `settings` and then keeps returning the
same instance, so the process has exactly one price feed connection.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Application
from livefeed.application.ports.market_data_provider import IHistoricalCandleSource
from livefeed.application.ports.price_feed import IPriceFeed
from livefeed.application.use_cases.calculate_indicators_usecase import CalculateIndicatorsUseCase
from livefeed.application.use_cases.track_live_candles_usecase import TrackLiveCandlesUseCase

# State
from livefeed.state.candle_store import CandleStore

# Shared
from livefeed.shared.config.settings import Settings


@dataclass
class Container:
    """
    Dependency Injection Container.

    Inner layers depend on the ports; this is where the implementations
    are chosen.
    """

    # Configuration
    settings: Settings = field(default_factory=Settings)

    # Ports (concrete implementations)
    _price_feed: Optional[IPriceFeed] = None
    _historical_source: Optional[IHistoricalCandleSource] = None

    # State and workers
    _candle_store: Optional[CandleStore] = None
    _indicator_worker: Optional[Any] = None

    # Use cases and presentation
    _indicator_usecase: Optional[CalculateIndicatorsUseCase] = None
    _live_candles: Optional[TrackLiveCandlesUseCase] = None
    _price_relay: Optional[Any] = None

    # ==================== Ports ====================

    @property
    def price_feed(self) -> IPriceFeed:
        """Shared price feed (singleton)."""
        if self._price_feed is None:
            from livefeed.infrastructure.feed.price_socket_manager import PriceSocketManager
            s = self.settings
            self._price_feed = PriceSocketManager(
                s.feed_ws_url,
                base_delay=s.feed_reconnect_base_delay,
                max_delay=s.feed_reconnect_max_delay,
                heartbeat_interval=s.feed_heartbeat_interval,
                pong_timeout=s.feed_pong_timeout,
                close_timeout=s.feed_close_timeout,
            )
        return self._price_feed

    @property
    def historical_source(self) -> IHistoricalCandleSource:
        """OHLCV REST client."""
        if self._historical_source is None:
            from livefeed.infrastructure.external.ohlcv_client import OhlcvClient
            s = self.settings
            self._historical_source = OhlcvClient(
                s.ohlcv_api_url,
                timeout=s.ohlcv_request_timeout,
                default_limit=s.ohlcv_default_limit,
                max_limit=s.ohlcv_max_limit,
            )
        return self._historical_source

    # ==================== State / Workers ====================

    @property
    def candle_store(self) -> CandleStore:
        if self._candle_store is None:
            self._candle_store = CandleStore(max_candles=self.settings.max_candles_buffer)
        return self._candle_store

    @property
    def indicator_worker(self):
        """Executor-backed computation channel."""
        if self._indicator_worker is None:
            from livefeed.infrastructure.workers.indicator_worker import IndicatorWorker
            self._indicator_worker = IndicatorWorker(
                kind=self.settings.indicator_executor,
                max_workers=self.settings.indicator_max_workers,
            )
        return self._indicator_worker

    # ==================== Use Cases ====================

    @property
    def indicator_usecase(self) -> CalculateIndicatorsUseCase:
        if self._indicator_usecase is None:
            self._indicator_usecase = CalculateIndicatorsUseCase(self.indicator_worker)
        return self._indicator_usecase

    @property
    def live_candles(self) -> TrackLiveCandlesUseCase:
        if self._live_candles is None:
            self._live_candles = TrackLiveCandlesUseCase(
                self.price_feed,
                self.candle_store,
                self.settings.live_candle_intervals,
            )
        return self._live_candles

    # ==================== Presentation ====================

    @property
    def price_relay(self):
        if self._price_relay is None:
            from livefeed.presentation.websocket.price_relay import PriceRelay
            self._price_relay = PriceRelay(self.price_feed, self.settings.relay_queue_size)
        return self._price_relay

    # ==================== Lifecycle ====================

    def reset(self) -> None:
        """Drop every instance (for tests)."""
        self._price_feed = None
        self._historical_source = None
        self._candle_store = None
        self._indicator_worker = None
        self._indicator_usecase = None
        self._live_candles = None
        self._price_relay = None

    def override(self, name: str, instance: Any) -> None:
        """
        Replace a dependency (for tests with fakes).

        Args:
            name: Dependency name (e.g. 'price_feed')
            instance: Instance to use instead
        """
        attr_name = f"_{name}"
        if hasattr(self, attr_name):
            setattr(self, attr_name, instance)
        else:
            raise ValueError(f"Unknown dependency: {name}")


# ==================== Global Container ====================

_container: Optional[Container] = None


def get_container() -> Container:
    """Process-wide container, created on first use."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    global _container
    if _container is not None:
        _container.reset()
    _container = None


def init_container(settings: Optional[Settings] = None) -> Container:
    """
    Create the global container with explicit settings.

    Args:
        settings: Configuration; defaults to Settings() from the environment.
    """
    global _container
    if settings is None:
        settings = Settings()
    _container = Container(settings=settings)
    return _container


def create_test_container(settings: Optional[Settings] = None, **fakes) -> Container:
    """
    Container with fakes injected.

    Example:
        container = create_test_container(price_feed=FakeFeed())
    """
    container = Container(settings=settings or Settings())
    for name, fake in fakes.items():
        container.override(name, fake)
    return container
