"""Exact decimal column type.

PostgreSQL stores ``NUMERIC`` values exactly, but SQLite has no decimal
storage class and coerces them to 8-byte floats. ``ExactDecimal`` keeps the
native ``NUMERIC`` column on PostgreSQL and falls back to a text column
everywhere else, so uint256 amounts and 34-digit ratios read back unchanged.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import Numeric, String
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator, TypeEngine

# Longest decimal text we write: 78 digits of uint256, or a ratio whose
# exponent form stays well under this.
_TEXT_LENGTH = 100


class ExactDecimal(TypeDecorator[Decimal]):
    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int | None = None, scale: int | None = None) -> None:
        super().__init__()
        self.precision = precision
        self.scale = scale

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(self.precision, self.scale, asdecimal=True))
        return dialect.type_descriptor(String(_TEXT_LENGTH))

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        if isinstance(value, bool) or isinstance(value, float):
            raise TypeError(f"ExactDecimal refuses {type(value).__name__} values")
        number = value if isinstance(value, Decimal) else Decimal(value)
        if dialect.name == "postgresql":
            return number
        return str(number)

    def process_result_value(self, value: Any, dialect: Dialect) -> Decimal | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
