"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from dex_trade_aggregator.ingestor.models import TradeEvent

PAY_ASSET = "0x" + "aa" * 20
BUY_ASSET = "0x" + "bb" * 20


@pytest.fixture
def pay_asset() -> str:
    """Sample pay-side token address."""
    return PAY_ASSET


@pytest.fixture
def buy_asset() -> str:
    """Sample buy-side token address."""
    return BUY_ASSET


@pytest.fixture
def make_trade() -> Callable[..., TradeEvent]:
    """Factory for trade events with sequential log indexes."""
    counter = {"log_index": 0}

    def _make(
        pay_amount: int,
        buy_amount: int,
        timestamp: int,
        *,
        pay_asset: str = PAY_ASSET,
        buy_asset: str = BUY_ASSET,
        **overrides: Any,
    ) -> TradeEvent:
        counter["log_index"] += 1
        fields: dict[str, Any] = {
            "tx_hash": "0x" + "01" * 32,
            "log_index": counter["log_index"],
            "pay_asset": pay_asset,
            "pay_amount": pay_amount,
            "buy_asset": buy_asset,
            "buy_amount": buy_amount,
            "timestamp": timestamp,
        }
        fields.update(overrides)
        return TradeEvent(**fields)

    return _make
