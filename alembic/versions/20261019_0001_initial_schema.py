"""Initial schema: pair time buckets, open orders, trades.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from dex_trade_aggregator.storage.types import ExactDecimal

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "pair_time_buckets",
        sa.Column("key", sa.String(200), nullable=False),
        sa.Column("granularity", sa.String(32), nullable=False),
        sa.Column("pay_asset", sa.String(66), nullable=False),
        sa.Column("buy_asset", sa.String(66), nullable=False),
        sa.Column("bucket_start", sa.BigInteger(), nullable=False),
        sa.Column("pay_amount", ExactDecimal(78, 0), nullable=False),
        sa.Column("buy_amount", ExactDecimal(78, 0), nullable=False),
        sa.Column("open_pay_over_buy", ExactDecimal(), nullable=False),
        sa.Column("close_pay_over_buy", ExactDecimal(), nullable=False),
        sa.Column("min_pay_over_buy", ExactDecimal(), nullable=False),
        sa.Column("max_pay_over_buy", ExactDecimal(), nullable=False),
        sa.Column("open_buy_over_pay", ExactDecimal(), nullable=False),
        sa.Column("close_buy_over_pay", ExactDecimal(), nullable=False),
        sa.Column("min_buy_over_pay", ExactDecimal(), nullable=False),
        sa.Column("max_buy_over_pay", ExactDecimal(), nullable=False),
        sa.Column("trade_count", sa.Integer(), nullable=False),
        sa.Column("last_event_id", sa.String(80), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )
    op.create_index(
        "idx_pair_time_buckets_pair_granularity_start",
        "pair_time_buckets",
        ["pay_asset", "buy_asset", "granularity", "bucket_start"],
    )

    op.create_table(
        "open_orders",
        sa.Column("order_id", sa.String(80), nullable=False),
        sa.Column("pair", sa.String(66), nullable=False),
        sa.Column("maker", sa.String(42), nullable=False),
        sa.Column("pay_asset", sa.String(66), nullable=False),
        sa.Column("buy_asset", sa.String(66), nullable=False),
        sa.Column("pay_amount", ExactDecimal(78, 0), nullable=False),
        sa.Column("buy_amount", ExactDecimal(78, 0), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("offer_type", sa.Integer(), nullable=False),
        sa.Column("last_event_id", sa.String(80), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("order_id"),
    )
    op.create_index("idx_open_orders_maker", "open_orders", ["maker"])
    op.create_index("idx_open_orders_assets", "open_orders", ["pay_asset", "buy_asset"])

    op.create_table(
        "trades",
        sa.Column("event_id", sa.String(80), nullable=False),
        sa.Column("tx_hash", sa.String(66), nullable=False),
        sa.Column("log_index", sa.Integer(), nullable=False),
        sa.Column("pay_asset", sa.String(66), nullable=False),
        sa.Column("pay_amount", ExactDecimal(78, 0), nullable=False),
        sa.Column("buy_asset", sa.String(66), nullable=False),
        sa.Column("buy_amount", ExactDecimal(78, 0), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("event_id"),
        sa.UniqueConstraint("tx_hash", "log_index", name="uq_trades_tx_log"),
    )
    op.create_index("idx_trades_pair_ts", "trades", ["pay_asset", "buy_asset", "timestamp"])


def downgrade() -> None:
    op.drop_index("idx_trades_pair_ts", table_name="trades")
    op.drop_table("trades")
    op.drop_index("idx_open_orders_assets", table_name="open_orders")
    op.drop_index("idx_open_orders_maker", table_name="open_orders")
    op.drop_table("open_orders")
    op.drop_index(
        "idx_pair_time_buckets_pair_granularity_start", table_name="pair_time_buckets"
    )
    op.drop_table("pair_time_buckets")
