"""Event pipeline for the DEX trade aggregator.

This module provides the EventPipeline class that routes decoded exchange
events, one at a time and in delivery order, to the aggregation engine and
the open-offer tracker.

Each event is handled inside its own store scope. With the SQL backend that
scope is one database transaction, so all granularities of a trade (and the
durable trade record) commit or roll back together.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from redis.asyncio import Redis

from dex_trade_aggregator.aggregation.bucketing import DEFAULT_GRANULARITIES, Granularity
from dex_trade_aggregator.aggregation.decimal_math import RATIO_PRECISION
from dex_trade_aggregator.aggregation.engine import AggregationEngine
from dex_trade_aggregator.aggregation.offers import OfferLifecycleTracker
from dex_trade_aggregator.aggregation.store import (
    AggregateStore,
    InMemoryAggregateStore,
    InMemoryOpenOrderStore,
    OpenOrderStore,
)
from dex_trade_aggregator.ingestor.models import (
    ChainEvent,
    OfferKilledEvent,
    OfferPlacedEvent,
    OfferTakenEvent,
    OrderFilledEvent,
    TradeEvent,
    parse_event,
)
from dex_trade_aggregator.storage.database import DatabaseManager
from dex_trade_aggregator.storage.redis_store import RedisAggregateStore, RedisOpenOrderStore
from dex_trade_aggregator.storage.repos import (
    OpenOrderRepository,
    PairTimeBucketRepository,
    TradeDTO,
    TradeRepository,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dex_trade_aggregator.config import Settings

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Pipeline lifecycle states."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class PipelineStats:
    """Statistics for the pipeline."""

    started_at: datetime | None = None
    events_processed: int = 0
    events_ignored: int = 0
    trades_aggregated: int = 0
    offers_placed: int = 0
    offers_filled: int = 0
    offers_closed: int = 0
    errors: int = 0
    last_event_id: str | None = None
    last_error: str | None = None


@dataclass
class EventStores:
    """Stores visible to a single event's handling."""

    aggregates: AggregateStore
    orders: OpenOrderStore
    trades: TradeRepository | None = None


StoreProvider = Callable[[], AbstractAsyncContextManager[EventStores]]


def sql_store_provider(db: DatabaseManager) -> StoreProvider:
    """One transactional session per event."""

    @asynccontextmanager
    async def provide() -> AsyncIterator[EventStores]:
        async with db.get_async_session() as session:
            yield EventStores(
                aggregates=PairTimeBucketRepository(session),
                orders=OpenOrderRepository(session),
                trades=TradeRepository(session),
            )

    return provide


def static_store_provider(aggregates: AggregateStore, orders: OpenOrderStore) -> StoreProvider:
    """Hand out the same long-lived stores for every event (Redis, memory)."""
    stores = EventStores(aggregates=aggregates, orders=orders)

    @asynccontextmanager
    async def provide() -> AsyncIterator[EventStores]:
        yield stores

    return provide


class EventPipeline:
    """Routes exchange events to the aggregation engine and offer tracker.

    Events must be handed over strictly one at a time; ``handle`` completes
    every store operation for an event before returning.

    Example:
        ```python
        pipeline = EventPipeline(static_store_provider(InMemoryAggregateStore(), InMemoryOpenOrderStore()))
        await pipeline.handle(trade_event)
        ```
    """

    def __init__(
        self,
        store_provider: StoreProvider,
        *,
        granularities: Sequence[Granularity] = DEFAULT_GRANULARITIES,
        ratio_precision: int = RATIO_PRECISION,
    ) -> None:
        self._store_provider = store_provider
        self._granularities = tuple(granularities)
        self._ratio_precision = ratio_precision
        self._state = PipelineState.STOPPED
        self._stats = PipelineStats()
        self._cleanups: list[Callable[[], Any]] = []
        self._db_manager: DatabaseManager | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> EventPipeline:
        """Build a pipeline wired to the configured store backend."""
        granularities = settings.aggregation.granularities
        precision = settings.aggregation.ratio_precision

        if settings.store_backend == "sql":
            db = DatabaseManager(settings.database.url, pool_size=settings.database.pool_size)
            pipeline = cls(sql_store_provider(db), granularities=granularities, ratio_precision=precision)
            pipeline._db_manager = db
            pipeline._cleanups.append(db.dispose)
            return pipeline

        if settings.store_backend == "redis":
            redis = Redis.from_url(settings.redis.url)
            provider = static_store_provider(
                RedisAggregateStore(redis, key_prefix=settings.redis.key_prefix),
                RedisOpenOrderStore(redis, key_prefix=settings.redis.key_prefix),
            )
            pipeline = cls(provider, granularities=granularities, ratio_precision=precision)
            pipeline._cleanups.append(redis.aclose)
            return pipeline

        provider = static_store_provider(InMemoryAggregateStore(), InMemoryOpenOrderStore())
        return cls(provider, granularities=granularities, ratio_precision=precision)

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def stats(self) -> PipelineStats:
        return self._stats

    @property
    def db_manager(self) -> DatabaseManager | None:
        return self._db_manager

    async def start(self) -> None:
        if self._state == PipelineState.RUNNING:
            raise RuntimeError(f"Cannot start pipeline in state {self._state}")
        self._stats.started_at = datetime.now(UTC)
        self._state = PipelineState.RUNNING
        logger.info(
            "Pipeline started (granularities=%s)",
            ",".join(f"{g.label}:{g.seconds}" for g in self._granularities),
        )

    async def stop(self) -> None:
        if self._state == PipelineState.STOPPED:
            return
        for cleanup in self._cleanups:
            await cleanup()
        self._state = PipelineState.STOPPED
        logger.info(
            "Pipeline stopped: processed=%d ignored=%d errors=%d",
            self._stats.events_processed,
            self._stats.events_ignored,
            self._stats.errors,
        )

    async def __aenter__(self) -> EventPipeline:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    async def handle(self, event: ChainEvent) -> None:
        """Apply one event to the derived state.

        Raises:
            AggregatorError: Propagated unchanged from the engine or tracker.
                With the SQL backend nothing from this event is committed.
        """
        try:
            async with self._store_provider() as stores:
                await self._dispatch(event, stores)
        except Exception as e:
            self._stats.errors += 1
            self._stats.last_error = str(e)
            logger.error("Error processing event %s: %s", event.event_id, e)
            raise

        self._stats.events_processed += 1
        self._stats.last_event_id = event.event_id

    async def handle_payload(self, payload: Mapping[str, Any]) -> ChainEvent | None:
        """Decode and apply one log envelope; unsupported event kinds are skipped."""
        try:
            event = parse_event(payload)
        except Exception as e:
            self._stats.errors += 1
            self._stats.last_error = str(e)
            logger.error("Rejected event payload %s: %s", payload.get("event"), e)
            raise
        if event is None:
            self._stats.events_ignored += 1
            logger.debug("Ignoring event %s", payload.get("event"))
            return None
        await self.handle(event)
        return event

    async def replay(self, payloads: Iterable[Mapping[str, Any]]) -> PipelineStats:
        """Process envelopes in order, stopping at the first failure."""
        for payload in payloads:
            await self.handle_payload(payload)
        return self._stats

    async def _dispatch(self, event: ChainEvent, stores: EventStores) -> None:
        if isinstance(event, TradeEvent):
            engine = AggregationEngine(
                stores.aggregates,
                granularities=self._granularities,
                ratio_precision=self._ratio_precision,
            )
            await engine.apply_trade(event)
            if stores.trades is not None:
                await stores.trades.upsert(TradeDTO.from_event(event))
            self._stats.trades_aggregated += 1
            return

        tracker = OfferLifecycleTracker(stores.orders)
        if isinstance(event, OfferPlacedEvent):
            await tracker.on_place(event.to_open_order())
            self._stats.offers_placed += 1
        elif isinstance(event, OfferTakenEvent):
            filled = await tracker.on_partial_fill(
                event.order_id, event.take_amount, event.give_amount, event_id=event.event_id
            )
            if filled is not None:
                self._stats.offers_filled += 1
        elif isinstance(event, (OfferKilledEvent, OrderFilledEvent)):
            if await tracker.on_full_fill_or_cancel(event.order_id):
                self._stats.offers_closed += 1
        else:
            raise TypeError(f"Unsupported event type: {type(event).__name__}")
