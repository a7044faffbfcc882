"""Ingestor module - decoding of on-chain exchange events."""

from dex_trade_aggregator.ingestor.models import (
    ChainEvent,
    OfferKilledEvent,
    OfferPlacedEvent,
    OfferTakenEvent,
    OrderFilledEvent,
    TradeEvent,
    parse_event,
)

__all__ = [
    "ChainEvent",
    "OfferKilledEvent",
    "OfferPlacedEvent",
    "OfferTakenEvent",
    "OrderFilledEvent",
    "TradeEvent",
    "parse_event",
]
