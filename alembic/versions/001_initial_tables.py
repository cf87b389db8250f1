"""Initial tables: wallets, learning progress, reward ledger and claim reservations.

Revision ID: 001_initial_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # --- Wallets ---
    op.create_table(
        "wallets",
        sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("wallet_address", sa.String(42), nullable=False),
        sa.Column("wallet_type", sa.String(32), nullable=False, server_default="metamask"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "wallet_address", name="uq_wallet_user_address"),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"])
    op.create_index("ix_wallets_wallet_address", "wallets", ["wallet_address"])

    # --- Learning progress ---
    op.create_table(
        "user_progress",
        sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("lesson_id", sa.String(64), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_progress_user_lesson"),
    )
    op.create_index("ix_user_progress_user_id", "user_progress", ["user_id"])

    op.create_table(
        "quiz_progress",
        sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("quiz_id", sa.String(64), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "quiz_id", name="uq_quiz_progress_user_quiz"),
        sa.CheckConstraint("score BETWEEN 0 AND 100", name="ck_quiz_progress_score"),
    )
    op.create_index("ix_quiz_progress_user_id", "quiz_progress", ["user_id"])

    # --- Rewards ---
    op.create_table(
        "tea_rewards",
        sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("wallet_address", sa.String(42), nullable=False),
        sa.Column("amount", sa.Numeric(36, 6), nullable=False),
        sa.Column("reward_type", sa.String(32), nullable=False),
        sa.Column("tx_hash", sa.String(66), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "reward_type", name="uq_tea_rewards_user_type"),
        sa.UniqueConstraint("wallet_address", "reward_type", name="uq_tea_rewards_wallet_type"),
    )

    op.create_table(
        "reward_claim_reservations",
        sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("wallet_address", sa.String(42), nullable=False),
        sa.Column("reward_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("tx_hash", sa.String(66), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "reward_type", name="uq_reservation_user_type"),
        sa.UniqueConstraint("wallet_address", "reward_type", name="uq_reservation_wallet_type"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("reward_claim_reservations")
    op.drop_table("tea_rewards")
    op.drop_index("ix_quiz_progress_user_id", table_name="quiz_progress")
    op.drop_table("quiz_progress")
    op.drop_index("ix_user_progress_user_id", table_name="user_progress")
    op.drop_table("user_progress")
    op.drop_index("ix_wallets_wallet_address", table_name="wallets")
    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")
