"""Aggregate and side-table records maintained by the engine."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

ZERO = Decimal(0)

_STRING_ENCODED_FIELDS = (
    "pay_amount",
    "buy_amount",
    "open_pay_over_buy",
    "close_pay_over_buy",
    "min_pay_over_buy",
    "max_pay_over_buy",
    "open_buy_over_pay",
    "close_buy_over_pay",
    "min_buy_over_pay",
    "max_buy_over_pay",
)


@dataclass
class PairTimeBucket:
    """OHLC-style aggregate for one pair at one granularity and bucket index.

    Ratios are per-trade samples: ``open``/``close`` are the first and latest
    trade's ratio, ``min``/``max`` the extrema over all trades in the bucket.
    They are never recomputed from the cumulative amounts.
    """

    key: str
    granularity: str
    pay_asset: str
    buy_asset: str
    bucket_start: int

    pay_amount: int = 0
    buy_amount: int = 0

    open_pay_over_buy: Decimal = ZERO
    close_pay_over_buy: Decimal = ZERO
    min_pay_over_buy: Decimal = ZERO
    max_pay_over_buy: Decimal = ZERO

    open_buy_over_pay: Decimal = ZERO
    close_buy_over_pay: Decimal = ZERO
    min_buy_over_pay: Decimal = ZERO
    max_buy_over_pay: Decimal = ZERO

    trade_count: int = 0
    # Event id of the most recent trade folded in; guards against redelivery.
    last_event_id: str | None = None

    def copy(self) -> PairTimeBucket:
        return dataclasses.replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-safe primitives (amounts and ratios as strings)."""
        data = dataclasses.asdict(self)
        for name in _STRING_ENCODED_FIELDS:
            data[name] = str(data[name])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PairTimeBucket:
        return cls(
            key=str(data["key"]),
            granularity=str(data["granularity"]),
            pay_asset=str(data["pay_asset"]),
            buy_asset=str(data["buy_asset"]),
            bucket_start=int(data["bucket_start"]),
            pay_amount=int(data["pay_amount"]),
            buy_amount=int(data["buy_amount"]),
            open_pay_over_buy=Decimal(str(data["open_pay_over_buy"])),
            close_pay_over_buy=Decimal(str(data["close_pay_over_buy"])),
            min_pay_over_buy=Decimal(str(data["min_pay_over_buy"])),
            max_pay_over_buy=Decimal(str(data["max_pay_over_buy"])),
            open_buy_over_pay=Decimal(str(data["open_buy_over_pay"])),
            close_buy_over_pay=Decimal(str(data["close_buy_over_pay"])),
            min_buy_over_pay=Decimal(str(data["min_buy_over_pay"])),
            max_buy_over_pay=Decimal(str(data["max_buy_over_pay"])),
            trade_count=int(data["trade_count"]),
            last_event_id=data.get("last_event_id"),
        )


@dataclass
class OpenOrder:
    """A currently-open offer, keyed directly by its on-chain order id."""

    order_id: int
    pair: str
    maker: str
    pay_asset: str
    buy_asset: str
    pay_amount: int
    buy_amount: int
    timestamp: int
    offer_type: int = 0
    last_event_id: str | None = None

    def copy(self) -> OpenOrder:
        return dataclasses.replace(self)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["order_id"] = str(self.order_id)
        data["pay_amount"] = str(self.pay_amount)
        data["buy_amount"] = str(self.buy_amount)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OpenOrder:
        return cls(
            order_id=int(data["order_id"]),
            pair=str(data["pair"]),
            maker=str(data["maker"]),
            pay_asset=str(data["pay_asset"]),
            buy_asset=str(data["buy_asset"]),
            pay_amount=int(data["pay_amount"]),
            buy_amount=int(data["buy_amount"]),
            timestamp=int(data["timestamp"]),
            offer_type=int(data.get("offer_type", 0)),
            last_event_id=data.get("last_event_id"),
        )
