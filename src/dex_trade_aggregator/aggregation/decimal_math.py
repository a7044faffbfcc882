"""Exact integer and decimal arithmetic for trade amounts and ratios.

Amounts are unsigned integers in the asset's native precision (uint256 on
chain) and are only ever added or subtracted as Python ints, so sums never
lose precision. Ratios are computed as Decimals under an explicit context
rather than the thread's default one, so results do not depend on caller state.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Context, Decimal, InvalidOperation
from typing import Any

# Significant digits kept for ratio samples (matches a 128-bit decimal).
RATIO_PRECISION = 34

UINT256_MAX = 2**256 - 1


def ratio_context(precision: int = RATIO_PRECISION) -> Context:
    """Build the decimal context used for ratio division."""
    if precision < 1:
        raise ValueError("precision must be positive")
    return Context(prec=precision, rounding=ROUND_HALF_EVEN)


def to_unsigned(value: Any) -> int:
    """Coerce an on-chain amount into a non-negative int.

    Accepts ints, decimal strings, ``0x``-prefixed hex strings, and integral
    Decimals. Floats are refused since they cannot carry uint256 values exactly.

    Raises:
        ValueError: If the value is missing, fractional, negative or too large.
    """
    if value is None:
        raise ValueError("amount is missing")
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"unsupported amount type: {type(value).__name__}")

    if isinstance(value, int):
        amount = value
    elif isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise ValueError(f"amount must be integral: {value}")
        amount = int(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            amount = int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError as e:
            raise ValueError(f"invalid amount: {value!r}") from e
    else:
        raise ValueError(f"unsupported amount type: {type(value).__name__}")

    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    if amount > UINT256_MAX:
        raise ValueError(f"amount exceeds uint256: {amount}")
    return amount


def exact_ratio(numerator: int, denominator: int, *, precision: int = RATIO_PRECISION) -> Decimal:
    """Divide two integer amounts into a Decimal ratio.

    Raises:
        ZeroDivisionError: If the denominator is zero.
    """
    if denominator == 0:
        raise ZeroDivisionError(f"ratio {numerator}/0 is undefined")
    ctx = ratio_context(precision)
    try:
        return ctx.divide(Decimal(numerator), Decimal(denominator))
    except InvalidOperation as e:
        raise ZeroDivisionError(f"ratio {numerator}/{denominator} is undefined") from e


def trade_ratios(
    pay_amount: int, buy_amount: int, *, precision: int = RATIO_PRECISION
) -> tuple[Decimal, Decimal]:
    """Return ``(pay/buy, buy/pay)`` for a single trade."""
    return (
        exact_ratio(pay_amount, buy_amount, precision=precision),
        exact_ratio(buy_amount, pay_amount, precision=precision),
    )


def checked_sub(remaining: int, amount: int) -> int | None:
    """Subtract ``amount`` from ``remaining``, or return None if it would go negative."""
    result = remaining - amount
    if result < 0:
        return None
    return result
