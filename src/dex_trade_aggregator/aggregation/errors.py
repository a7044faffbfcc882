"""Domain errors raised by the aggregation engine and offer tracker.

All errors are surfaced to the caller synchronously. Retrying (or not) is the
job of whatever delivers events, never of the engine itself.
"""

from __future__ import annotations


class AggregatorError(Exception):
    """Base exception for aggregation failures."""


class MalformedEventError(AggregatorError):
    """Raised when an event is missing a field or would divide by zero."""


class StoreUnavailableError(AggregatorError):
    """Raised when the backing store fails to load, save or remove a record."""


class NegativeRemainderError(AggregatorError):
    """Raised when a fill would drive an open order's remaining amount below zero."""

    def __init__(self, order_id: int, *, remaining: int, filled: int, field: str) -> None:
        self.order_id = order_id
        self.remaining = remaining
        self.filled = filled
        self.field = field
        super().__init__(
            f"Fill of {filled} exceeds remaining {field}={remaining} for order {order_id}"
        )
