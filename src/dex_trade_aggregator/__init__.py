"""DEX Trade Aggregator - windowed OHLC aggregates and open-offer tracking for on-chain exchange events."""

__version__ = "0.1.0"
