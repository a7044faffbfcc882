"""Repository pattern implementations for data access.

The bucket and open-order repositories implement the aggregation store
protocols on top of an ``AsyncSession``: they load and persist full
snapshots, never merge, and translate database failures into
``StoreUnavailableError``. Nothing here commits; the caller owns the
transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from dex_trade_aggregator.aggregation.errors import StoreUnavailableError
from dex_trade_aggregator.aggregation.models import OpenOrder, PairTimeBucket
from dex_trade_aggregator.aggregation.store import new_bucket
from dex_trade_aggregator.storage.models import OpenOrderModel, PairTimeBucketModel, TradeModel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from dex_trade_aggregator.ingestor.models import TradeEvent

logger = logging.getLogger(__name__)


def _upsert(
    session: AsyncSession,
    model: type[Any],
    values: dict[str, Any],
    *,
    index_elements: Sequence[str],
    update_columns: Sequence[str],
) -> Any:
    """Build an INSERT .. ON CONFLICT DO UPDATE for the session's dialect."""
    dialect = session.get_bind().dialect.name
    insert = sqlite_insert if dialect == "sqlite" else pg_insert
    stmt = insert(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=list(index_elements),
        set_={column: getattr(stmt.excluded, column) for column in update_columns},
    )


def bucket_from_model(model: PairTimeBucketModel) -> PairTimeBucket:
    return PairTimeBucket(
        key=model.key,
        granularity=model.granularity,
        pay_asset=model.pay_asset,
        buy_asset=model.buy_asset,
        bucket_start=int(model.bucket_start),
        pay_amount=int(model.pay_amount),
        buy_amount=int(model.buy_amount),
        open_pay_over_buy=model.open_pay_over_buy,
        close_pay_over_buy=model.close_pay_over_buy,
        min_pay_over_buy=model.min_pay_over_buy,
        max_pay_over_buy=model.max_pay_over_buy,
        open_buy_over_pay=model.open_buy_over_pay,
        close_buy_over_pay=model.close_buy_over_pay,
        min_buy_over_pay=model.min_buy_over_pay,
        max_buy_over_pay=model.max_buy_over_pay,
        trade_count=int(model.trade_count),
        last_event_id=model.last_event_id,
    )


def order_from_model(model: OpenOrderModel) -> OpenOrder:
    return OpenOrder(
        order_id=int(model.order_id),
        pair=model.pair,
        maker=model.maker,
        pay_asset=model.pay_asset,
        buy_asset=model.buy_asset,
        pay_amount=int(model.pay_amount),
        buy_amount=int(model.buy_amount),
        timestamp=int(model.timestamp),
        offer_type=int(model.offer_type),
        last_event_id=model.last_event_id,
    )


_BUCKET_MUTABLE_COLUMNS = (
    "pay_amount",
    "buy_amount",
    "close_pay_over_buy",
    "min_pay_over_buy",
    "max_pay_over_buy",
    "close_buy_over_pay",
    "min_buy_over_pay",
    "max_buy_over_pay",
    "trade_count",
    "last_event_id",
    "updated_at",
)


class PairTimeBucketRepository:
    """SQL-backed aggregate store for pair time buckets."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load(self, key: str) -> PairTimeBucket | None:
        try:
            result = await self.session.execute(
                select(PairTimeBucketModel)
                .where(PairTimeBucketModel.key == key)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to load bucket {key}: {e}") from e
        model = result.scalar_one_or_none()
        return bucket_from_model(model) if model else None

    def create(
        self,
        key: str,
        *,
        bucket_start: int,
        granularity: str,
        pay_asset: str,
        buy_asset: str,
    ) -> PairTimeBucket:
        return new_bucket(
            key,
            bucket_start=bucket_start,
            granularity=granularity,
            pay_asset=pay_asset,
            buy_asset=buy_asset,
        )

    async def save(self, bucket: PairTimeBucket) -> None:
        """Persist the full bucket snapshot (insert or overwrite).

        ``bucket_start``, identity columns and the open ratios are only
        written on insert.
        """
        now = datetime.now(UTC)
        values = {
            "key": bucket.key,
            "granularity": bucket.granularity,
            "pay_asset": bucket.pay_asset,
            "buy_asset": bucket.buy_asset,
            "bucket_start": bucket.bucket_start,
            "pay_amount": Decimal(bucket.pay_amount),
            "buy_amount": Decimal(bucket.buy_amount),
            "open_pay_over_buy": bucket.open_pay_over_buy,
            "close_pay_over_buy": bucket.close_pay_over_buy,
            "min_pay_over_buy": bucket.min_pay_over_buy,
            "max_pay_over_buy": bucket.max_pay_over_buy,
            "open_buy_over_pay": bucket.open_buy_over_pay,
            "close_buy_over_pay": bucket.close_buy_over_pay,
            "min_buy_over_pay": bucket.min_buy_over_pay,
            "max_buy_over_pay": bucket.max_buy_over_pay,
            "trade_count": bucket.trade_count,
            "last_event_id": bucket.last_event_id,
            "created_at": now,
            "updated_at": now,
        }
        stmt = _upsert(
            self.session,
            PairTimeBucketModel,
            values,
            index_elements=["key"],
            update_columns=_BUCKET_MUTABLE_COLUMNS,
        )
        try:
            await self.session.execute(stmt)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to save bucket {bucket.key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await self.session.execute(delete(PairTimeBucketModel).where(PairTimeBucketModel.key == key))
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to remove bucket {key}: {e}") from e

    async def list_series(
        self,
        *,
        pay_asset: str,
        buy_asset: str,
        granularity: str,
        start: int,
        end: int,
    ) -> list[PairTimeBucket]:
        """Buckets for one pair and granularity with ``start <= bucket_start <= end``."""
        try:
            result = await self.session.execute(
                select(PairTimeBucketModel)
                .where(
                    (PairTimeBucketModel.pay_asset == pay_asset.lower())
                    & (PairTimeBucketModel.buy_asset == buy_asset.lower())
                    & (PairTimeBucketModel.granularity == granularity)
                    & (PairTimeBucketModel.bucket_start >= start)
                    & (PairTimeBucketModel.bucket_start <= end)
                )
                .order_by(PairTimeBucketModel.bucket_start.asc())
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to list buckets: {e}") from e
        return [bucket_from_model(model) for model in result.scalars().all()]


class OpenOrderRepository:
    """SQL-backed open-offer side-table keyed by order id."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load(self, order_id: int) -> OpenOrder | None:
        try:
            result = await self.session.execute(
                select(OpenOrderModel)
                .where(OpenOrderModel.order_id == str(order_id))
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to load offer {order_id}: {e}") from e
        model = result.scalar_one_or_none()
        return order_from_model(model) if model else None

    async def save(self, order: OpenOrder) -> None:
        values = {
            "order_id": str(order.order_id),
            "pair": order.pair,
            "maker": order.maker.lower(),
            "pay_asset": order.pay_asset,
            "buy_asset": order.buy_asset,
            "pay_amount": Decimal(order.pay_amount),
            "buy_amount": Decimal(order.buy_amount),
            "timestamp": order.timestamp,
            "offer_type": order.offer_type,
            "last_event_id": order.last_event_id,
            "updated_at": datetime.now(UTC),
        }
        stmt = _upsert(
            self.session,
            OpenOrderModel,
            values,
            index_elements=["order_id"],
            update_columns=[column for column in values if column != "order_id"],
        )
        try:
            await self.session.execute(stmt)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to save offer {order.order_id}: {e}") from e

    async def remove(self, order_id: int) -> None:
        try:
            await self.session.execute(delete(OpenOrderModel).where(OpenOrderModel.order_id == str(order_id)))
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to remove offer {order_id}: {e}") from e

    async def list_by_maker(self, maker: str) -> list[OpenOrder]:
        try:
            result = await self.session.execute(
                select(OpenOrderModel)
                .where(OpenOrderModel.maker == maker.lower())
                .order_by(OpenOrderModel.timestamp.asc())
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to list offers for {maker}: {e}") from e
        return [order_from_model(model) for model in result.scalars().all()]


@dataclass
class TradeDTO:
    """Data transfer object for trades."""

    event_id: str
    tx_hash: str
    log_index: int
    pay_asset: str
    pay_amount: int
    buy_asset: str
    buy_amount: int
    timestamp: int
    created_at: datetime | None = None

    @classmethod
    def from_event(cls, event: TradeEvent) -> TradeDTO:
        return cls(
            event_id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            pay_asset=event.pay_asset,
            pay_amount=event.pay_amount,
            buy_asset=event.buy_asset,
            buy_amount=event.buy_amount,
            timestamp=event.timestamp,
        )

    @classmethod
    def from_model(cls, model: TradeModel) -> TradeDTO:
        return cls(
            event_id=model.event_id,
            tx_hash=model.tx_hash,
            log_index=model.log_index,
            pay_asset=model.pay_asset,
            pay_amount=int(model.pay_amount),
            buy_asset=model.buy_asset,
            buy_amount=int(model.buy_amount),
            timestamp=int(model.timestamp),
            created_at=model.created_at,
        )


class TradeRepository:
    """Repository for persisted trades."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_event_id(self, event_id: str) -> TradeDTO | None:
        try:
            result = await self.session.execute(select(TradeModel).where(TradeModel.event_id == event_id))
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to load trade {event_id}: {e}") from e
        model = result.scalar_one_or_none()
        return TradeDTO.from_model(model) if model else None

    async def upsert(self, dto: TradeDTO) -> TradeDTO:
        """Upsert trade by event id (idempotent ingestion)."""
        values = {
            "event_id": dto.event_id,
            "tx_hash": dto.tx_hash,
            "log_index": dto.log_index,
            "pay_asset": dto.pay_asset,
            "pay_amount": Decimal(dto.pay_amount),
            "buy_asset": dto.buy_asset,
            "buy_amount": Decimal(dto.buy_amount),
            "timestamp": dto.timestamp,
            "created_at": datetime.now(UTC),
        }
        stmt = _upsert(
            self.session,
            TradeModel,
            values,
            index_elements=["event_id"],
            update_columns=["pay_asset", "pay_amount", "buy_asset", "buy_amount", "timestamp"],
        )
        try:
            await self.session.execute(stmt)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to save trade {dto.event_id}: {e}") from e
        return dto
