"""Open-offer side-table maintained from offer lifecycle events.

The table is a materialized view with no independent source of truth, so
fills and cancels for offers it does not hold are quiet no-ops: the offer
may already be fully resolved, or may predate the indexed range.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, TypeVar

from dex_trade_aggregator.aggregation.decimal_math import checked_sub
from dex_trade_aggregator.aggregation.errors import (
    AggregatorError,
    NegativeRemainderError,
    StoreUnavailableError,
)

if TYPE_CHECKING:
    from dex_trade_aggregator.aggregation.models import OpenOrder
    from dex_trade_aggregator.aggregation.store import OpenOrderStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OfferLifecycleTracker:
    """Creates, decrements and removes open-offer rows keyed by order id."""

    def __init__(self, store: OpenOrderStore) -> None:
        self._store = store

    async def on_place(self, order: OpenOrder) -> OpenOrder:
        """Record a new offer, replacing any row with the same id."""
        await self._call("save", order.order_id, self._store.save(order))
        logger.debug("Opened offer %d (pay=%d, buy=%d)", order.order_id, order.pay_amount, order.buy_amount)
        return order

    async def on_partial_fill(
        self,
        order_id: int,
        filled_pay_amount: int,
        filled_buy_amount: int,
        *,
        event_id: str | None = None,
    ) -> OpenOrder | None:
        """Subtract a fill from an open offer's remaining amounts.

        When ``event_id`` is given and matches the last fill applied to the
        offer, the fill is a redelivery and is skipped.

        Returns:
            The updated offer, or None if no such offer is open.

        Raises:
            NegativeRemainderError: If the fill exceeds what remains. The stored
                row is left unchanged.
        """
        order = await self._call("load", order_id, self._store.load(order_id))
        if order is None:
            logger.debug("Fill for unknown offer %d ignored", order_id)
            return None

        if event_id is not None and order.last_event_id == event_id:
            logger.warning("Fill %s already applied to offer %d; skipping", event_id, order_id)
            return order

        pay_remaining = checked_sub(order.pay_amount, filled_pay_amount)
        if pay_remaining is None:
            raise NegativeRemainderError(
                order_id, remaining=order.pay_amount, filled=filled_pay_amount, field="pay_amount"
            )
        buy_remaining = checked_sub(order.buy_amount, filled_buy_amount)
        if buy_remaining is None:
            raise NegativeRemainderError(
                order_id, remaining=order.buy_amount, filled=filled_buy_amount, field="buy_amount"
            )

        updated = order.copy()
        updated.pay_amount = pay_remaining
        updated.buy_amount = buy_remaining
        if event_id is not None:
            updated.last_event_id = event_id
        await self._call("save", order_id, self._store.save(updated))
        logger.debug("Offer %d remaining pay=%d buy=%d", order_id, pay_remaining, buy_remaining)
        return updated

    async def on_full_fill_or_cancel(self, order_id: int) -> bool:
        """Drop an offer that was filled to completion or cancelled.

        Returns:
            True if a row was removed, False if none was open.
        """
        order = await self._call("load", order_id, self._store.load(order_id))
        if order is None:
            logger.debug("Close for unknown offer %d ignored", order_id)
            return False
        await self._call("remove", order_id, self._store.remove(order_id))
        logger.debug("Closed offer %d", order_id)
        return True

    @staticmethod
    async def _call(operation: str, order_id: int, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except AggregatorError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to {operation} offer {order_id}: {e}") from e
