"""Store adapter contracts and in-memory implementations.

Adapters are plain storage facades: they load and persist full snapshots and
never merge. The engine and offer tracker only see these protocols, so any
backend (SQL, Redis, memory) can be injected.
"""

from __future__ import annotations

from typing import Protocol

from dex_trade_aggregator.aggregation.models import OpenOrder, PairTimeBucket


class AggregateStore(Protocol):
    async def load(self, key: str) -> PairTimeBucket | None:
        raise NotImplementedError

    def create(
        self,
        key: str,
        *,
        bucket_start: int,
        granularity: str,
        pay_asset: str,
        buy_asset: str,
    ) -> PairTimeBucket:
        raise NotImplementedError

    async def save(self, bucket: PairTimeBucket) -> None:
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        raise NotImplementedError


class OpenOrderStore(Protocol):
    async def load(self, order_id: int) -> OpenOrder | None:
        raise NotImplementedError

    async def save(self, order: OpenOrder) -> None:
        raise NotImplementedError

    async def remove(self, order_id: int) -> None:
        raise NotImplementedError


def new_bucket(
    key: str,
    *,
    bucket_start: int,
    granularity: str,
    pay_asset: str,
    buy_asset: str,
) -> PairTimeBucket:
    """Build a zero-valued bucket (not persisted until saved)."""
    return PairTimeBucket(
        key=key,
        granularity=granularity,
        pay_asset=pay_asset,
        buy_asset=buy_asset,
        bucket_start=bucket_start,
    )


class InMemoryAggregateStore:
    """Dict-backed aggregate store, used for tests and dry runs."""

    def __init__(self) -> None:
        self._buckets: dict[str, PairTimeBucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def keys(self) -> list[str]:
        return list(self._buckets)

    async def load(self, key: str) -> PairTimeBucket | None:
        bucket = self._buckets.get(key)
        return bucket.copy() if bucket is not None else None

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
        self._buckets[bucket.key] = bucket.copy()

    async def remove(self, key: str) -> None:
        self._buckets.pop(key, None)


class InMemoryOpenOrderStore:
    """Dict-backed open-order side-table."""

    def __init__(self) -> None:
        self._orders: dict[int, OpenOrder] = {}

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    async def load(self, order_id: int) -> OpenOrder | None:
        order = self._orders.get(order_id)
        return order.copy() if order is not None else None

    async def save(self, order: OpenOrder) -> None:
        self._orders[order.order_id] = order.copy()

    async def remove(self, order_id: int) -> None:
        self._orders.pop(order_id, None)
