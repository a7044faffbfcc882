"""Tests for aggregate record serialization."""

from decimal import Decimal

from dex_trade_aggregator.aggregation.decimal_math import UINT256_MAX
from dex_trade_aggregator.aggregation.models import OpenOrder, PairTimeBucket


class TestPairTimeBucket:
    """Tests for PairTimeBucket."""

    def test_new_bucket_is_zeroed(self) -> None:
        bucket = PairTimeBucket(
            key="a-b-hour-0", granularity="hour", pay_asset="a", buy_asset="b", bucket_start=0
        )
        assert bucket.pay_amount == 0
        assert bucket.trade_count == 0
        assert bucket.max_pay_over_buy == Decimal(0)
        assert bucket.last_event_id is None

    def test_to_dict_encodes_numbers_as_strings(self) -> None:
        bucket = PairTimeBucket(
            key="a-b-day-3",
            granularity="day",
            pay_asset="a",
            buy_asset="b",
            bucket_start=259200,
            pay_amount=UINT256_MAX,
            buy_amount=3,
            close_pay_over_buy=Decimal("0.3333333333333333333333333333333333"),
            trade_count=4,
            last_event_id="0x01-2",
        )
        data = bucket.to_dict()

        assert data["pay_amount"] == str(UINT256_MAX)
        assert data["close_pay_over_buy"] == "0.3333333333333333333333333333333333"
        assert data["trade_count"] == 4
        assert PairTimeBucket.from_dict(data) == bucket

    def test_copy_is_independent(self) -> None:
        bucket = PairTimeBucket(key="k", granularity="hour", pay_asset="a", buy_asset="b", bucket_start=0)
        clone = bucket.copy()
        clone.pay_amount = 9
        assert bucket.pay_amount == 0


class TestOpenOrder:
    """Tests for OpenOrder."""

    def test_dict_round_trip_keeps_big_id(self) -> None:
        order = OpenOrder(
            order_id=2**200,
            pair="0xcc",
            maker="0xdd",
            pay_asset="0xaa",
            buy_asset="0xbb",
            pay_amount=10**30,
            buy_amount=1,
            timestamp=5,
            offer_type=1,
        )
        data = order.to_dict()
        assert data["order_id"] == str(2**200)
        assert OpenOrder.from_dict(data) == order

    def test_offer_type_defaults(self) -> None:
        data = {
            "order_id": "1",
            "pair": "0xcc",
            "maker": "0xdd",
            "pay_asset": "0xaa",
            "buy_asset": "0xbb",
            "pay_amount": "1",
            "buy_amount": "2",
            "timestamp": 0,
        }
        assert OpenOrder.from_dict(data).offer_type == 0
