"""Tests for time bucketing."""

import pytest

from dex_trade_aggregator.aggregation.bucketing import (
    DAY,
    DEFAULT_GRANULARITIES,
    HOUR,
    Granularity,
    bucket,
    bucket_key,
    locate,
    parse_granularities,
)


class TestBucket:
    """Tests for bucket index and start computation."""

    def test_hour_boundary(self) -> None:
        assert bucket(3599, 3600).index == 0
        assert bucket(3599, 3600).start == 0
        assert bucket(3600, 3600).index == 1
        assert bucket(3600, 3600).start == 3600

    def test_epoch(self) -> None:
        position = bucket(0, 86400)
        assert position.index == 0
        assert position.start == 0

    @pytest.mark.parametrize("timestamp", [0, 1, 3599, 3600, 86399, 86400, 1_700_000_123])
    @pytest.mark.parametrize("seconds", [60, 3600, 86400, 604800])
    def test_start_is_aligned_and_covers_timestamp(self, timestamp: int, seconds: int) -> None:
        position = bucket(timestamp, seconds)
        assert position.start % seconds == 0
        assert position.start <= timestamp < position.start + seconds

    def test_rejects_non_positive_granularity(self) -> None:
        with pytest.raises(ValueError):
            bucket(10, 0)

    def test_rejects_negative_timestamp(self) -> None:
        with pytest.raises(ValueError):
            bucket(-1, 3600)


class TestGranularity:
    """Tests for granularity definitions."""

    def test_defaults(self) -> None:
        assert DEFAULT_GRANULARITIES == (HOUR, DAY)
        assert HOUR.seconds == 3600
        assert DAY.seconds == 86400

    @pytest.mark.parametrize(
        "label,seconds",
        [("", 60), ("half-hour", 1800), ("min", 0), ("min", -60), ("min", True)],
    )
    def test_invalid(self, label: str, seconds: int) -> None:
        with pytest.raises(ValueError):
            Granularity(label, seconds)


class TestKeys:
    """Tests for bucket key composition."""

    def test_key_format(self) -> None:
        assert bucket_key("0xaa", "0xbb", "hour", 1) == "0xaa-0xbb-hour-1"

    def test_direction_matters(self) -> None:
        assert bucket_key("0xaa", "0xbb", "hour", 1) != bucket_key("0xbb", "0xaa", "hour", 1)

    def test_locate(self) -> None:
        ref = locate("0xaa", "0xbb", 90000, DAY)
        assert ref.key == "0xaa-0xbb-day-1"
        assert ref.index == 1
        assert ref.start == 86400
        assert ref.granularity is DAY


class TestParseGranularities:
    """Tests for granularity configuration parsing."""

    def test_parse_default(self) -> None:
        assert parse_granularities("hour:3600,day:86400") == (HOUR, DAY)

    def test_preserves_order_and_whitespace(self) -> None:
        result = parse_granularities(" week:604800 , minute:60 ")
        assert [g.label for g in result] == ["week", "minute"]
        assert [g.seconds for g in result] == [604800, 60]

    @pytest.mark.parametrize("spec", ["", "hour", "hour:abc", "hour:3600,hour:7200", "hour:-1"])
    def test_invalid(self, spec: str) -> None:
        with pytest.raises(ValueError):
            parse_granularities(spec)
