"""create wallets table

Revision ID: 001
Revises:
Create Date: 2025-07-31 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("wallet_address", sa.String(42), nullable=False),
        sa.Column("tx_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gas_spent_mon", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_volume", sa.Float(), nullable=False, server_default="0"),
        sa.Column("nft_bag_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_day1_user", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("days_active", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("volume_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("gas_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("transaction_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("nft_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("days_active_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("streak_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("day1_bonus_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("transaction_history", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_wallets_wallet_address", "wallets", ["wallet_address"], unique=True)
    op.create_index("ix_wallets_total_score", "wallets", ["total_score"])


def downgrade() -> None:
    op.drop_index("ix_wallets_total_score", table_name="wallets")
    op.drop_index("ix_wallets_wallet_address", table_name="wallets")
    op.drop_table("wallets")
