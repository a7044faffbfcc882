"""Tests for ingestor event models."""

from __future__ import annotations

from typing import Any

import pytest
from hexbytes import HexBytes

from dex_trade_aggregator.aggregation.errors import MalformedEventError
from dex_trade_aggregator.ingestor.models import (
    OfferKilledEvent,
    OfferPlacedEvent,
    OfferTakenEvent,
    OrderFilledEvent,
    TradeEvent,
    parse_event,
)

TX_HASH = "0x" + "ab" * 32
PAY_GEM = "0x" + "11" * 20
BUY_GEM = "0x" + "22" * 20
MAKER = "0x" + "33" * 20
TAKER = "0x" + "44" * 20
PAIR = "0x" + "55" * 32


def envelope(event: str, args: dict[str, Any], log_index: int = 3) -> dict[str, Any]:
    return {"event": event, "args": args, "transactionHash": TX_HASH, "logIndex": log_index}


class TestTradeEvent:
    """Tests for TradeEvent."""

    def test_from_json_args(self) -> None:
        args = {
            "payGem": "0x" + "Aa" * 20,
            "payAmt": "1000000000000000000",
            "buyGem": BUY_GEM,
            "buyAmt": "0x10",
            "timestamp": 3600,
        }
        trade = TradeEvent.from_log(args, tx_hash=TX_HASH, log_index=3)

        assert trade.pay_asset == "0x" + "aa" * 20
        assert trade.pay_amount == 10**18
        assert trade.buy_asset == BUY_GEM
        assert trade.buy_amount == 16
        assert trade.timestamp == 3600
        assert trade.event_id == f"{TX_HASH}-3"

    def test_from_web3_args(self) -> None:
        """Decoded logs carry HexBytes hashes and checksum addresses."""
        args = {
            "payGem": bytes.fromhex("11" * 20),
            "payAmt": 5,
            "buyGem": BUY_GEM,
            "buyAmt": 7,
            "timestamp": 10,
        }
        trade = TradeEvent.from_log(args, tx_hash=HexBytes(TX_HASH), log_index=0)

        assert trade.tx_hash == TX_HASH
        assert trade.pay_asset == PAY_GEM

    def test_zero_amount_is_accepted_at_decode(self) -> None:
        """Zero amounts are rejected by the engine, not the decoder."""
        args = {"payGem": PAY_GEM, "payAmt": 0, "buyGem": BUY_GEM, "buyAmt": 1, "timestamp": 0}
        assert TradeEvent.from_log(args, tx_hash=TX_HASH, log_index=0).pay_amount == 0

    @pytest.mark.parametrize("missing", ["payGem", "payAmt", "buyGem", "buyAmt", "timestamp"])
    def test_missing_field(self, missing: str) -> None:
        args = {"payGem": PAY_GEM, "payAmt": 1, "buyGem": BUY_GEM, "buyAmt": 1, "timestamp": 0}
        del args[missing]
        with pytest.raises(MalformedEventError):
            TradeEvent.from_log(args, tx_hash=TX_HASH, log_index=0)

    @pytest.mark.parametrize("value", [-1, 1.5, "nope", 2**256])
    def test_bad_amount(self, value: Any) -> None:
        args = {"payGem": PAY_GEM, "payAmt": value, "buyGem": BUY_GEM, "buyAmt": 1, "timestamp": 0}
        with pytest.raises(MalformedEventError):
            TradeEvent.from_log(args, tx_hash=TX_HASH, log_index=0)

    def test_bad_asset(self) -> None:
        args = {"payGem": "not-hex", "payAmt": 1, "buyGem": BUY_GEM, "buyAmt": 1, "timestamp": 0}
        with pytest.raises(MalformedEventError):
            TradeEvent.from_log(args, tx_hash=TX_HASH, log_index=0)

    def test_requires_location(self) -> None:
        args = {"payGem": PAY_GEM, "payAmt": 1, "buyGem": BUY_GEM, "buyAmt": 1, "timestamp": 0}
        with pytest.raises(MalformedEventError):
            TradeEvent.from_log(args, tx_hash=None, log_index=0)

    def test_frozen(self) -> None:
        trade = TradeEvent(
            tx_hash=TX_HASH,
            log_index=0,
            pay_asset=PAY_GEM,
            pay_amount=1,
            buy_asset=BUY_GEM,
            buy_amount=1,
            timestamp=0,
        )
        with pytest.raises(AttributeError):
            trade.pay_amount = 2  # type: ignore[misc]


class TestOfferEvents:
    """Tests for offer lifecycle events."""

    def test_make(self) -> None:
        args = {
            "id": HexBytes("0x" + "00" * 31 + "2a"),
            "pair": PAIR,
            "maker": MAKER,
            "payGem": PAY_GEM,
            "buyGem": BUY_GEM,
            "payAmt": 100,
            "buyAmt": 200,
            "timestamp": 1_700_000_000,
        }
        event = OfferPlacedEvent.from_log(args, tx_hash=TX_HASH, log_index=1)

        assert event.order_id == 42
        assert event.offer_type == 0
        order = event.to_open_order()
        assert order.order_id == 42
        assert order.pay_amount == 100
        assert order.buy_amount == 200
        assert order.maker == MAKER

    def test_take(self) -> None:
        args = {
            "id": "42",
            "pair": PAIR,
            "maker": MAKER,
            "taker": TAKER,
            "payGem": PAY_GEM,
            "buyGem": BUY_GEM,
            "takeAmt": 30,
            "giveAmt": 60,
            "timestamp": 1_700_000_100,
            "offerType": 1,
        }
        event = OfferTakenEvent.from_log(args, tx_hash=TX_HASH, log_index=2)

        assert event.order_id == 42
        assert event.take_amount == 30
        assert event.give_amount == 60
        assert event.taker == TAKER
        assert event.offer_type == 1

    def test_kill_optional_fields(self) -> None:
        event = OfferKilledEvent.from_log({"id": 42}, tx_hash=TX_HASH, log_index=4)
        assert event.order_id == 42
        assert event.pair == ""
        assert event.maker == ""
        assert event.timestamp == 0

    def test_order_filled(self) -> None:
        event = OrderFilledEvent.from_log({"id": "0x2a"}, tx_hash=TX_HASH, log_index=5)
        assert event.order_id == 42
        assert event.event_id == f"{TX_HASH}-5"


class TestParseEvent:
    """Tests for envelope dispatch."""

    def test_trade(self) -> None:
        event = parse_event(
            envelope(
                "LogTrade",
                {"payGem": PAY_GEM, "payAmt": "1", "buyGem": BUY_GEM, "buyAmt": "2", "timestamp": "60"},
            )
        )
        assert isinstance(event, TradeEvent)
        assert event.timestamp == 60

    def test_filled(self) -> None:
        assert isinstance(parse_event(envelope("LogOrderFilled", {"id": 1})), OrderFilledEvent)

    def test_unsupported_event_ignored(self) -> None:
        assert parse_event(envelope("LogDeposit", {"amount": 1})) is None

    def test_missing_event_name(self) -> None:
        with pytest.raises(MalformedEventError):
            parse_event({"args": {}})

    def test_missing_args(self) -> None:
        with pytest.raises(MalformedEventError):
            parse_event({"event": "LogKill", "transactionHash": TX_HASH, "logIndex": 0})
