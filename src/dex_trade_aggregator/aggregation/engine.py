"""Windowed aggregation engine.

For every trade the engine samples the pay/buy ratio, locates the bucket at
each configured granularity, and folds the trade into it:

- first trade in a bucket: amounts and all ratio fields come from the trade,
  ``trade_count`` is 1
- later trades: amounts are summed, min/max widened, close overwritten,
  ``trade_count`` incremented; open and ``bucket_start`` never change

Granularities are independent. A failure part way through leaves earlier
granularities saved; atomicity across them is the store's concern (the SQL
pipeline wraps each event in a single transaction). Each bucket remembers the
last event folded into it, so redelivering that event is a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import TYPE_CHECKING

from dex_trade_aggregator.aggregation.bucketing import (
    DEFAULT_GRANULARITIES,
    BucketRef,
    Granularity,
    locate,
)
from dex_trade_aggregator.aggregation.decimal_math import RATIO_PRECISION, trade_ratios
from dex_trade_aggregator.aggregation.errors import (
    AggregatorError,
    MalformedEventError,
    StoreUnavailableError,
)
from dex_trade_aggregator.aggregation.models import PairTimeBucket

if TYPE_CHECKING:
    from dex_trade_aggregator.aggregation.store import AggregateStore
    from dex_trade_aggregator.ingestor.models import TradeEvent

logger = logging.getLogger(__name__)


def open_bucket(
    bucket: PairTimeBucket,
    *,
    pay_amount: int,
    buy_amount: int,
    pay_over_buy: Decimal,
    buy_over_pay: Decimal,
    event_id: str,
) -> PairTimeBucket:
    """Seed a freshly created bucket from its first trade."""
    bucket.pay_amount = pay_amount
    bucket.buy_amount = buy_amount
    bucket.open_pay_over_buy = pay_over_buy
    bucket.close_pay_over_buy = pay_over_buy
    bucket.min_pay_over_buy = pay_over_buy
    bucket.max_pay_over_buy = pay_over_buy
    bucket.open_buy_over_pay = buy_over_pay
    bucket.close_buy_over_pay = buy_over_pay
    bucket.min_buy_over_pay = buy_over_pay
    bucket.max_buy_over_pay = buy_over_pay
    bucket.trade_count = 1
    bucket.last_event_id = event_id
    return bucket


def fold_trade(
    bucket: PairTimeBucket,
    *,
    pay_amount: int,
    buy_amount: int,
    pay_over_buy: Decimal,
    buy_over_pay: Decimal,
    event_id: str,
) -> PairTimeBucket:
    """Merge one more trade into an existing bucket."""
    bucket.pay_amount += pay_amount
    bucket.buy_amount += buy_amount

    if pay_over_buy < bucket.min_pay_over_buy:
        bucket.min_pay_over_buy = pay_over_buy
    if pay_over_buy > bucket.max_pay_over_buy:
        bucket.max_pay_over_buy = pay_over_buy
    if buy_over_pay < bucket.min_buy_over_pay:
        bucket.min_buy_over_pay = buy_over_pay
    if buy_over_pay > bucket.max_buy_over_pay:
        bucket.max_buy_over_pay = buy_over_pay

    bucket.close_pay_over_buy = pay_over_buy
    bucket.close_buy_over_pay = buy_over_pay
    bucket.trade_count += 1
    bucket.last_event_id = event_id
    return bucket


class AggregationEngine:
    """Maintains per-pair OHLC buckets at a configured set of granularities."""

    def __init__(
        self,
        store: AggregateStore,
        *,
        granularities: Sequence[Granularity] = DEFAULT_GRANULARITIES,
        ratio_precision: int = RATIO_PRECISION,
    ) -> None:
        if not granularities:
            raise ValueError("at least one granularity is required")
        labels = [g.label for g in granularities]
        if len(set(labels)) != len(labels):
            raise ValueError(f"granularity labels must be unique: {labels}")
        self._store = store
        self._granularities = tuple(granularities)
        self._ratio_precision = ratio_precision

    @property
    def granularities(self) -> tuple[Granularity, ...]:
        return self._granularities

    def compute_ratios(self, trade: TradeEvent) -> tuple[Decimal, Decimal]:
        """Return ``(pay/buy, buy/pay)`` for a trade.

        Raises:
            MalformedEventError: If either amount is zero or negative.
        """
        if trade.pay_amount <= 0 or trade.buy_amount <= 0:
            raise MalformedEventError(
                f"trade {trade.event_id} has non-positive amount "
                f"(pay={trade.pay_amount}, buy={trade.buy_amount})"
            )
        return trade_ratios(trade.pay_amount, trade.buy_amount, precision=self._ratio_precision)

    def locate_buckets(self, trade: TradeEvent) -> list[BucketRef]:
        if not trade.pay_asset or not trade.buy_asset:
            raise MalformedEventError(f"trade {trade.event_id} is missing an asset identifier")
        try:
            return [
                locate(trade.pay_asset, trade.buy_asset, trade.timestamp, g) for g in self._granularities
            ]
        except ValueError as e:
            raise MalformedEventError(f"trade {trade.event_id}: {e}") from e

    async def apply_trade(self, trade: TradeEvent) -> list[PairTimeBucket]:
        """Fold a trade into its bucket at every configured granularity.

        The trade is fully validated before any store access, so a malformed
        trade never touches stored state.

        Returns:
            The bucket snapshots as saved, one per granularity.

        Raises:
            MalformedEventError: If the trade cannot be aggregated.
            StoreUnavailableError: If the store fails to load or save.
        """
        pay_over_buy, buy_over_pay = self.compute_ratios(trade)
        refs = self.locate_buckets(trade)

        results: list[PairTimeBucket] = []
        for ref in refs:
            existing = await self._load(ref.key)
            if existing is None:
                bucket = self._store.create(
                    ref.key,
                    bucket_start=ref.start,
                    granularity=ref.granularity.label,
                    pay_asset=trade.pay_asset,
                    buy_asset=trade.buy_asset,
                )
                open_bucket(
                    bucket,
                    pay_amount=trade.pay_amount,
                    buy_amount=trade.buy_amount,
                    pay_over_buy=pay_over_buy,
                    buy_over_pay=buy_over_pay,
                    event_id=trade.event_id,
                )
                logger.debug("Created bucket %s (start=%d)", ref.key, ref.start)
            elif existing.last_event_id == trade.event_id:
                logger.warning("Trade %s already folded into %s; skipping", trade.event_id, ref.key)
                results.append(existing)
                continue
            else:
                # Merge into a copy so a failed save leaves no half-updated object behind.
                bucket = fold_trade(
                    existing.copy(),
                    pay_amount=trade.pay_amount,
                    buy_amount=trade.buy_amount,
                    pay_over_buy=pay_over_buy,
                    buy_over_pay=buy_over_pay,
                    event_id=trade.event_id,
                )
                logger.debug("Updated bucket %s (trades=%d)", ref.key, bucket.trade_count)

            await self._save(bucket)
            results.append(bucket)

        return results

    async def _load(self, key: str) -> PairTimeBucket | None:
        try:
            return await self._store.load(key)
        except AggregatorError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to load bucket {key}: {e}") from e

    async def _save(self, bucket: PairTimeBucket) -> None:
        try:
            await self._store.save(bucket)
        except AggregatorError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to save bucket {bucket.key}: {e}") from e
