"""Data models for exchange log events.

Each event can be built from web3-decoded log arguments (``AttributeDict``
with ``HexBytes`` values) or from the equivalent JSON mapping, where byte
strings arrive as ``0x`` hex and big integers as decimal or hex strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from web3 import Web3

from dex_trade_aggregator.aggregation.decimal_math import to_unsigned
from dex_trade_aggregator.aggregation.errors import MalformedEventError
from dex_trade_aggregator.aggregation.models import OpenOrder


def _require(args: Mapping[str, Any], name: str) -> Any:
    value = args.get(name)
    if value is None:
        raise MalformedEventError(f"missing required field: {name}")
    return value


def _to_hex(value: Any, *, field: str) -> str:
    """Normalize an address or bytes32 value into lowercase 0x-hex."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        if len(value) == 0:
            raise MalformedEventError(f"empty byte string for {field}")
        return Web3.to_hex(bytes(value)).lower()
    if isinstance(value, str):
        text = value.strip().lower()
        if not text.startswith("0x") or len(text) <= 2:
            raise MalformedEventError(f"{field} must be 0x-prefixed hex: {value!r}")
        try:
            int(text, 16)
        except ValueError as e:
            raise MalformedEventError(f"{field} is not valid hex: {value!r}") from e
        return text
    raise MalformedEventError(f"unsupported type for {field}: {type(value).__name__}")


def _to_amount(value: Any, *, field: str) -> int:
    try:
        return to_unsigned(value)
    except ValueError as e:
        raise MalformedEventError(f"invalid {field}: {e}") from e


def _to_order_id(value: Any) -> int:
    # Offer ids are emitted either as uint256 or as a bytes32 word.
    if isinstance(value, (bytes, bytearray, memoryview)):
        return int.from_bytes(bytes(value), "big")
    return _to_amount(value, field="id")


def _event_location(tx_hash: Any, log_index: Any) -> tuple[str, int]:
    if tx_hash is None or log_index is None:
        raise MalformedEventError("event requires transaction hash and log index")
    return _to_hex(tx_hash, field="transactionHash"), _to_amount(log_index, field="logIndex")


@dataclass(frozen=True)
class TradeEvent:
    """A trade execution (``LogTrade``): ``pay_amount`` of ``pay_asset`` for ``buy_amount`` of ``buy_asset``."""

    event_name: ClassVar[str] = "LogTrade"

    tx_hash: str
    log_index: int
    pay_asset: str
    pay_amount: int
    buy_asset: str
    buy_amount: int
    timestamp: int  # unix seconds

    @property
    def event_id(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"

    @classmethod
    def from_log(cls, args: Mapping[str, Any], *, tx_hash: Any, log_index: Any) -> TradeEvent:
        tx, index = _event_location(tx_hash, log_index)
        return cls(
            tx_hash=tx,
            log_index=index,
            pay_asset=_to_hex(_require(args, "payGem"), field="payGem"),
            pay_amount=_to_amount(_require(args, "payAmt"), field="payAmt"),
            buy_asset=_to_hex(_require(args, "buyGem"), field="buyGem"),
            buy_amount=_to_amount(_require(args, "buyAmt"), field="buyAmt"),
            timestamp=_to_amount(_require(args, "timestamp"), field="timestamp"),
        )


@dataclass(frozen=True)
class OfferPlacedEvent:
    """A new resting offer (``LogMake``)."""

    event_name: ClassVar[str] = "LogMake"

    tx_hash: str
    log_index: int
    order_id: int
    pair: str
    maker: str
    pay_asset: str
    buy_asset: str
    pay_amount: int
    buy_amount: int
    timestamp: int
    offer_type: int = 0

    @property
    def event_id(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"

    def to_open_order(self) -> OpenOrder:
        return OpenOrder(
            order_id=self.order_id,
            pair=self.pair,
            maker=self.maker,
            pay_asset=self.pay_asset,
            buy_asset=self.buy_asset,
            pay_amount=self.pay_amount,
            buy_amount=self.buy_amount,
            timestamp=self.timestamp,
            offer_type=self.offer_type,
            last_event_id=self.event_id,
        )

    @classmethod
    def from_log(cls, args: Mapping[str, Any], *, tx_hash: Any, log_index: Any) -> OfferPlacedEvent:
        tx, index = _event_location(tx_hash, log_index)
        return cls(
            tx_hash=tx,
            log_index=index,
            order_id=_to_order_id(_require(args, "id")),
            pair=_to_hex(_require(args, "pair"), field="pair"),
            maker=_to_hex(_require(args, "maker"), field="maker"),
            pay_asset=_to_hex(_require(args, "payGem"), field="payGem"),
            buy_asset=_to_hex(_require(args, "buyGem"), field="buyGem"),
            pay_amount=_to_amount(_require(args, "payAmt"), field="payAmt"),
            buy_amount=_to_amount(_require(args, "buyAmt"), field="buyAmt"),
            timestamp=_to_amount(_require(args, "timestamp"), field="timestamp"),
            offer_type=_to_amount(args.get("offerType", 0), field="offerType"),
        )


@dataclass(frozen=True)
class OfferTakenEvent:
    """A partial take against a resting offer (``LogTake``).

    ``take_amount`` is paid out of the offer's pay side and ``give_amount``
    is received on its buy side.
    """

    event_name: ClassVar[str] = "LogTake"

    tx_hash: str
    log_index: int
    order_id: int
    pair: str
    maker: str
    taker: str
    pay_asset: str
    buy_asset: str
    take_amount: int
    give_amount: int
    timestamp: int
    offer_type: int = 0

    @property
    def event_id(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"

    @classmethod
    def from_log(cls, args: Mapping[str, Any], *, tx_hash: Any, log_index: Any) -> OfferTakenEvent:
        tx, index = _event_location(tx_hash, log_index)
        return cls(
            tx_hash=tx,
            log_index=index,
            order_id=_to_order_id(_require(args, "id")),
            pair=_to_hex(_require(args, "pair"), field="pair"),
            maker=_to_hex(_require(args, "maker"), field="maker"),
            taker=_to_hex(_require(args, "taker"), field="taker"),
            pay_asset=_to_hex(_require(args, "payGem"), field="payGem"),
            buy_asset=_to_hex(_require(args, "buyGem"), field="buyGem"),
            take_amount=_to_amount(_require(args, "takeAmt"), field="takeAmt"),
            give_amount=_to_amount(_require(args, "giveAmt"), field="giveAmt"),
            timestamp=_to_amount(_require(args, "timestamp"), field="timestamp"),
            offer_type=_to_amount(args.get("offerType", 0), field="offerType"),
        )


@dataclass(frozen=True)
class OfferKilledEvent:
    """A cancelled offer (``LogKill``)."""

    event_name: ClassVar[str] = "LogKill"

    tx_hash: str
    log_index: int
    order_id: int
    pair: str = ""
    maker: str = ""
    timestamp: int = 0

    @property
    def event_id(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"

    @classmethod
    def from_log(cls, args: Mapping[str, Any], *, tx_hash: Any, log_index: Any) -> OfferKilledEvent:
        tx, index = _event_location(tx_hash, log_index)
        pair = args.get("pair")
        maker = args.get("maker")
        return cls(
            tx_hash=tx,
            log_index=index,
            order_id=_to_order_id(_require(args, "id")),
            pair=_to_hex(pair, field="pair") if pair is not None else "",
            maker=_to_hex(maker, field="maker") if maker is not None else "",
            timestamp=_to_amount(args.get("timestamp", 0), field="timestamp"),
        )


@dataclass(frozen=True)
class OrderFilledEvent:
    """An offer filled to completion (``LogOrderFilled``)."""

    event_name: ClassVar[str] = "LogOrderFilled"

    tx_hash: str
    log_index: int
    order_id: int

    @property
    def event_id(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"

    @classmethod
    def from_log(cls, args: Mapping[str, Any], *, tx_hash: Any, log_index: Any) -> OrderFilledEvent:
        tx, index = _event_location(tx_hash, log_index)
        return cls(tx_hash=tx, log_index=index, order_id=_to_order_id(_require(args, "id")))


ChainEvent = Union[TradeEvent, OfferPlacedEvent, OfferTakenEvent, OfferKilledEvent, OrderFilledEvent]

_EVENT_TYPES: dict[str, Any] = {
    cls.event_name: cls
    for cls in (TradeEvent, OfferPlacedEvent, OfferTakenEvent, OfferKilledEvent, OrderFilledEvent)
}


def parse_event(payload: Mapping[str, Any]) -> ChainEvent | None:
    """Build an event from a decoded log envelope.

    The envelope mirrors web3's decoded log: ``event`` (name), ``args``,
    ``transactionHash`` and ``logIndex``. Events this service does not
    aggregate (deposits, withdrawals, ownership changes, ...) return None.

    Raises:
        MalformedEventError: If a supported event is missing required fields.
    """
    name = payload.get("event")
    if not name:
        raise MalformedEventError("event envelope is missing 'event'")
    event_cls = _EVENT_TYPES.get(str(name))
    if event_cls is None:
        return None
    args = payload.get("args")
    if not isinstance(args, Mapping):
        raise MalformedEventError(f"{name} envelope is missing 'args'")
    return event_cls.from_log(
        args,
        tx_hash=payload.get("transactionHash"),
        log_index=payload.get("logIndex"),
    )
