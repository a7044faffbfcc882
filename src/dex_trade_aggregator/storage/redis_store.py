"""Redis-backed store adapters.

Each record is one Redis string holding a JSON snapshot. Amounts and ratios
are stored as strings so that uint256 values and Decimals survive the round
trip exactly.
"""

from __future__ import annotations

import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from dex_trade_aggregator.aggregation.errors import StoreUnavailableError
from dex_trade_aggregator.aggregation.models import OpenOrder, PairTimeBucket
from dex_trade_aggregator.aggregation.store import new_bucket

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "dex:"


class RedisAggregateStore:
    """Aggregate store keeping bucket snapshots under ``{prefix}bucket:{key}``."""

    def __init__(self, redis: Redis, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._redis = redis
        self._prefix = f"{key_prefix}bucket:"

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def load(self, key: str) -> PairTimeBucket | None:
        try:
            raw = await self._redis.get(self._key(key))
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to load bucket {key}: {e}") from e
        if raw is None:
            return None
        try:
            return PairTimeBucket.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            raise StoreUnavailableError(f"Corrupt bucket snapshot for {key}: {e}") from e

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
        payload = json.dumps(bucket.to_dict(), sort_keys=True)
        try:
            await self._redis.set(self._key(bucket.key), payload)
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to save bucket {bucket.key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to remove bucket {key}: {e}") from e


class RedisOpenOrderStore:
    """Open-offer side-table keeping one snapshot per ``{prefix}offer:{order_id}``."""

    def __init__(self, redis: Redis, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._redis = redis
        self._prefix = f"{key_prefix}offer:"

    def _key(self, order_id: int) -> str:
        return f"{self._prefix}{order_id}"

    async def load(self, order_id: int) -> OpenOrder | None:
        try:
            raw = await self._redis.get(self._key(order_id))
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to load offer {order_id}: {e}") from e
        if raw is None:
            return None
        try:
            return OpenOrder.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            raise StoreUnavailableError(f"Corrupt offer snapshot for {order_id}: {e}") from e

    async def save(self, order: OpenOrder) -> None:
        payload = json.dumps(order.to_dict(), sort_keys=True)
        try:
            await self._redis.set(self._key(order.order_id), payload)
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to save offer {order.order_id}: {e}") from e

    async def remove(self, order_id: int) -> None:
        try:
            await self._redis.delete(self._key(order_id))
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to remove offer {order_id}: {e}") from e
