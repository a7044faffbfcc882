"""Aggregation core - time bucketing, OHLC folding and open-offer tracking."""

from dex_trade_aggregator.aggregation.bucketing import (
    DEFAULT_GRANULARITIES,
    BucketPosition,
    BucketRef,
    Granularity,
    bucket,
    bucket_key,
    parse_granularities,
)
from dex_trade_aggregator.aggregation.engine import AggregationEngine
from dex_trade_aggregator.aggregation.errors import (
    AggregatorError,
    MalformedEventError,
    NegativeRemainderError,
    StoreUnavailableError,
)
from dex_trade_aggregator.aggregation.models import OpenOrder, PairTimeBucket
from dex_trade_aggregator.aggregation.offers import OfferLifecycleTracker
from dex_trade_aggregator.aggregation.store import (
    AggregateStore,
    InMemoryAggregateStore,
    InMemoryOpenOrderStore,
    OpenOrderStore,
)

__all__ = [
    "DEFAULT_GRANULARITIES",
    "AggregateStore",
    "AggregationEngine",
    "AggregatorError",
    "BucketPosition",
    "BucketRef",
    "Granularity",
    "InMemoryAggregateStore",
    "InMemoryOpenOrderStore",
    "MalformedEventError",
    "NegativeRemainderError",
    "OfferLifecycleTracker",
    "OpenOrder",
    "OpenOrderStore",
    "PairTimeBucket",
    "StoreUnavailableError",
    "bucket",
    "bucket_key",
    "parse_granularities",
]
