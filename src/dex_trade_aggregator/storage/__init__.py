"""Storage layer - Database schemas, repositories and Redis adapters."""

from dex_trade_aggregator.storage.database import (
    DatabaseManager,
    create_async_db_engine,
    create_async_session_factory,
    init_async_db,
)
from dex_trade_aggregator.storage.models import (
    Base,
    OpenOrderModel,
    PairTimeBucketModel,
    TradeModel,
)
from dex_trade_aggregator.storage.redis_store import RedisAggregateStore, RedisOpenOrderStore
from dex_trade_aggregator.storage.repos import (
    OpenOrderRepository,
    PairTimeBucketRepository,
    TradeDTO,
    TradeRepository,
)
from dex_trade_aggregator.storage.types import ExactDecimal

__all__ = [
    "Base",
    "DatabaseManager",
    "ExactDecimal",
    "OpenOrderModel",
    "OpenOrderRepository",
    "PairTimeBucketModel",
    "PairTimeBucketRepository",
    "RedisAggregateStore",
    "RedisOpenOrderStore",
    "TradeDTO",
    "TradeModel",
    "TradeRepository",
    "create_async_db_engine",
    "create_async_session_factory",
    "init_async_db",
]
