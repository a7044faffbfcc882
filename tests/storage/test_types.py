"""Tests for the exact decimal column type."""

from decimal import Decimal

import pytest
from sqlalchemy import Numeric, String
from sqlalchemy.dialects import postgresql, sqlite

from dex_trade_aggregator.aggregation.decimal_math import UINT256_MAX, exact_ratio
from dex_trade_aggregator.storage.types import ExactDecimal


class TestExactDecimal:
    """Tests for ExactDecimal dialect handling."""

    def test_sqlite_uses_text(self) -> None:
        impl = ExactDecimal(78, 0).load_dialect_impl(sqlite.dialect())
        assert isinstance(impl, String)

    def test_postgresql_uses_numeric(self) -> None:
        impl = ExactDecimal(78, 0).load_dialect_impl(postgresql.dialect())
        assert isinstance(impl, Numeric)
        assert impl.precision == 78
        assert impl.scale == 0

    @pytest.mark.parametrize(
        "value",
        [0, 10**19 + 1, UINT256_MAX, Decimal(UINT256_MAX // 2), exact_ratio(1, 3), exact_ratio(2**200, 7)],
    )
    def test_sqlite_round_trip_is_exact(self, value) -> None:
        column_type = ExactDecimal()
        dialect = sqlite.dialect()
        stored = column_type.process_bind_param(value, dialect)
        assert isinstance(stored, str)
        assert column_type.process_result_value(stored, dialect) == Decimal(value)

    def test_postgresql_binds_decimal(self) -> None:
        column_type = ExactDecimal()
        assert column_type.process_bind_param(UINT256_MAX, postgresql.dialect()) == Decimal(UINT256_MAX)

    def test_none_passes_through(self) -> None:
        column_type = ExactDecimal()
        assert column_type.process_bind_param(None, sqlite.dialect()) is None
        assert column_type.process_result_value(None, sqlite.dialect()) is None

    @pytest.mark.parametrize("value", [0.1, True])
    def test_rejects_floats_and_bools(self, value) -> None:
        with pytest.raises(TypeError):
            ExactDecimal().process_bind_param(value, sqlite.dialect())
