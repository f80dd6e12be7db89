"""In-memory state."""
from livefeed.state.candle_store import CandleStore, interval_seconds

__all__ = ["CandleStore", "interval_seconds"]
