"""SQLAlchemy models for persistent storage.

This module defines the database schema for windowed pair aggregates, the
open-offer side-table, and the durable per-trade record.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from dex_trade_aggregator.storage.types import ExactDecimal

# uint256 needs 78 decimal digits.
AMOUNT_TYPE = ExactDecimal(78, 0)
# Ratios keep their full significant digits; no fixed scale.
RATIO_TYPE = ExactDecimal()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class PairTimeBucketModel(Base):
    """OHLC aggregate per (pay asset, buy asset, granularity, bucket index)."""

    __tablename__ = "pair_time_buckets"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    granularity: Mapped[str] = mapped_column(String(32), nullable=False)
    pay_asset: Mapped[str] = mapped_column(String(66), nullable=False)
    buy_asset: Mapped[str] = mapped_column(String(66), nullable=False)
    bucket_start: Mapped[int] = mapped_column(BigInteger, nullable=False)

    pay_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)
    buy_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)

    open_pay_over_buy: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)
    close_pay_over_buy: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)
    min_pay_over_buy: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)
    max_pay_over_buy: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)
    open_buy_over_pay: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)
    close_buy_over_pay: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)
    min_buy_over_pay: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)
    max_buy_over_pay: Mapped[Decimal] = mapped_column(RATIO_TYPE, nullable=False)

    trade_count: Mapped[int] = mapped_column(Integer, nullable=False)
    last_event_id: Mapped[str | None] = mapped_column(String(80), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index(
            "idx_pair_time_buckets_pair_granularity_start",
            "pay_asset",
            "buy_asset",
            "granularity",
            "bucket_start",
        ),
    )


class OpenOrderModel(Base):
    """Currently open offers; rows are deleted once filled or cancelled."""

    __tablename__ = "open_orders"

    # Decimal string of the on-chain id (ids may be full bytes32 words).
    order_id: Mapped[str] = mapped_column(String(80), primary_key=True)
    pair: Mapped[str] = mapped_column(String(66), nullable=False)
    maker: Mapped[str] = mapped_column(String(42), nullable=False)
    pay_asset: Mapped[str] = mapped_column(String(66), nullable=False)
    buy_asset: Mapped[str] = mapped_column(String(66), nullable=False)
    pay_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)
    buy_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    offer_type: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_event_id: Mapped[str | None] = mapped_column(String(80), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_open_orders_maker", "maker"),
        Index("idx_open_orders_assets", "pay_asset", "buy_asset"),
    )


class TradeModel(Base):
    """Executed trade events (durable truth), one row per log event."""

    __tablename__ = "trades"

    event_id: Mapped[str] = mapped_column(String(80), primary_key=True)
    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    pay_asset: Mapped[str] = mapped_column(String(66), nullable=False)
    pay_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)
    buy_asset: Mapped[str] = mapped_column(String(66), nullable=False)
    buy_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", name="uq_trades_tx_log"),
        Index("idx_trades_pair_ts", "pay_asset", "buy_asset", "timestamp"),
    )
