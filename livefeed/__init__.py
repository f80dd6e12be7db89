"""
LiveFeed – real-time market data distribution and indicator pipeline.

One shared push-connection to the price feed, fanned out to any number of
subscribers, plus an off-loop indicator engine fed from candle history.
"""

__version__ = "0.3.0"
