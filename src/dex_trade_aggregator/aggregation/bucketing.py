"""Time bucketing: map unix timestamps onto aligned windows.

A granularity is a named window width. Buckets are numbered from the unix
epoch, so bucket ``i`` of an ``n``-second granularity covers
``[i * n, (i + 1) * n)``.
"""

from __future__ import annotations

from dataclasses import dataclass

KEY_SEPARATOR = "-"


@dataclass(frozen=True)
class Granularity:
    """A named bucket width."""

    label: str
    seconds: int

    def __post_init__(self) -> None:
        if not self.label:
            raise ValueError("granularity label must not be empty")
        if KEY_SEPARATOR in self.label:
            raise ValueError(f"granularity label must not contain {KEY_SEPARATOR!r}: {self.label}")
        if isinstance(self.seconds, bool) or not isinstance(self.seconds, int) or self.seconds <= 0:
            raise ValueError(f"granularity seconds must be a positive integer: {self.seconds!r}")


HOUR = Granularity("hour", 3600)
DAY = Granularity("day", 86400)
DEFAULT_GRANULARITIES: tuple[Granularity, ...] = (HOUR, DAY)


@dataclass(frozen=True)
class BucketPosition:
    index: int
    start: int


@dataclass(frozen=True)
class BucketRef:
    """Fully resolved bucket for one trade at one granularity."""

    key: str
    granularity: Granularity
    index: int
    start: int


def bucket(timestamp: int, granularity_seconds: int) -> BucketPosition:
    """Return the bucket index and aligned start for a timestamp."""
    if granularity_seconds <= 0:
        raise ValueError("granularity_seconds must be positive")
    if timestamp < 0:
        raise ValueError(f"timestamp must be non-negative: {timestamp}")
    index = timestamp // granularity_seconds
    return BucketPosition(index=index, start=index * granularity_seconds)


def bucket_key(pay_asset: str, buy_asset: str, label: str, index: int) -> str:
    return KEY_SEPARATOR.join((pay_asset, buy_asset, label, str(index)))


def locate(pay_asset: str, buy_asset: str, timestamp: int, granularity: Granularity) -> BucketRef:
    position = bucket(timestamp, granularity.seconds)
    return BucketRef(
        key=bucket_key(pay_asset, buy_asset, granularity.label, position.index),
        granularity=granularity,
        index=position.index,
        start=position.start,
    )


def parse_granularities(spec: str) -> tuple[Granularity, ...]:
    """Parse ``"hour:3600,day:86400"`` into granularities, preserving order.

    Raises:
        ValueError: On malformed entries, duplicate labels, or an empty set.
    """
    result: list[Granularity] = []
    seen: set[str] = set()
    for raw in spec.split(","):
        entry = raw.strip()
        if not entry:
            continue
        label, sep, seconds_raw = entry.partition(":")
        if not sep:
            raise ValueError(f"granularity must be 'label:seconds': {entry!r}")
        try:
            seconds = int(seconds_raw.strip())
        except ValueError as e:
            raise ValueError(f"granularity seconds must be an integer: {entry!r}") from e
        granularity = Granularity(label.strip(), seconds)
        if granularity.label in seen:
            raise ValueError(f"duplicate granularity label: {granularity.label}")
        seen.add(granularity.label)
        result.append(granularity)
    if not result:
        raise ValueError("at least one granularity is required")
    return tuple(result)
