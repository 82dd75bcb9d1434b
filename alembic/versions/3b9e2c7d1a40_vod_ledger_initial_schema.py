"""vod_ledger_initial_schema

Revision ID: 3b9e2c7d1a40
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3b9e2c7d1a40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("phone_number", sa.String(32), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default=sa.text("'USER'")),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("role IN ('USER','CREATOR','ADMIN')", name="ck_users_role"),
        sa.CheckConstraint("status IN ('ACTIVE','BLOCKED','DELETED')", name="ck_users_status"),
        sa.UniqueConstraint("phone_number", name="uq_users_phone_number"),
    )
    op.create_index("idx_users_username", "users", ["username"])
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "wallet_accounts",
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("primary_balance", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("bonus_balance", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'RWF'")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("primary_balance >= 0", name="ck_wallet_accounts_primary_non_negative"),
        sa.CheckConstraint("bonus_balance >= 0", name="ck_wallet_accounts_bonus_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "content_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("content_type", sa.String(16), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("price", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_percent", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'RWF'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("content_type IN ('MOVIE','SERIES')", name="ck_content_items_type"),
        sa.CheckConstraint("price >= 0", name="ck_content_items_price_non_negative"),
        sa.CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="ck_content_items_discount_range",
        ),
    )
    op.create_index("idx_content_items_type", "content_items", ["content_type"])

    op.create_table(
        "seasons",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("content_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["content_id"], ["content_items.id"]),
        sa.UniqueConstraint("content_id", "season_number", name="uq_seasons_content_number"),
    )

    op.create_table(
        "episodes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("season_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("episode_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("price", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_free", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("price >= 0", name="ck_episodes_price_non_negative"),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.ForeignKeyConstraint(["content_id"], ["content_items.id"]),
        sa.UniqueConstraint("season_id", "episode_number", name="uq_episodes_season_number"),
    )
    op.create_index("idx_episodes_content", "episodes", ["content_id"])

    op.create_table(
        "pending_payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("external_ref", sa.String(96), nullable=False),
        sa.Column("purpose", sa.String(32), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("target_kind", sa.String(16), nullable=True),
        sa.Column("content_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("season_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("episode_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("provider_transaction_id", sa.String(128), nullable=True),
        sa.Column("redirect_link", sa.Text(), nullable=True),
        sa.Column("raw_confirmation", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("verify_failures", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "purpose IN ('WALLET_TOPUP','CONTENT_PURCHASE')",
            name="ck_pending_payments_purpose",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING','COMPLETED','FAILED')",
            name="ck_pending_payments_status",
        ),
        sa.CheckConstraint("amount > 0", name="ck_pending_payments_amount_positive"),
        sa.CheckConstraint(
            "(purpose = 'CONTENT_PURCHASE') = (content_id IS NOT NULL)",
            name="ck_pending_payments_content_target",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["content_id"], ["content_items.id"]),
        sa.UniqueConstraint("external_ref", name="uq_pending_payments_external_ref"),
    )
    op.create_index("idx_pending_payments_user_created", "pending_payments", ["user_id", "created_at"])
    op.create_index(
        "idx_pending_payments_pending_created",
        "pending_payments",
        ["created_at"],
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        "purchase_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("target_kind", sa.String(16), nullable=False),
        sa.Column("content_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("season_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("episode_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("price_paid", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("pending_payment_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("snapshot_episode_ids", postgresql.ARRAY(postgresql.UUID(as_uuid=True)), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "target_kind IN ('MOVIE','SERIES','SEASON','EPISODE')",
            name="ck_purchase_records_target_kind",
        ),
        sa.CheckConstraint("status IN ('COMPLETED','REFUNDED')", name="ck_purchase_records_status"),
        sa.CheckConstraint(
            "payment_method IN ('WALLET','GATEWAY')",
            name="ck_purchase_records_payment_method",
        ),
        sa.CheckConstraint("price_paid > 0", name="ck_purchase_records_price_positive"),
        sa.CheckConstraint(
            "(target_kind = 'SEASON') = (season_id IS NOT NULL)",
            name="ck_purchase_records_season_target",
        ),
        sa.CheckConstraint(
            "(target_kind = 'EPISODE') = (episode_id IS NOT NULL)",
            name="ck_purchase_records_episode_target",
        ),
        sa.CheckConstraint(
            "(target_kind IN ('SERIES','SEASON')) = (snapshot_episode_ids IS NOT NULL)",
            name="ck_purchase_records_snapshot_only_for_bundles",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["content_id"], ["content_items.id"]),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.ForeignKeyConstraint(["episode_id"], ["episodes.id"]),
        sa.ForeignKeyConstraint(["pending_payment_id"], ["pending_payments.id"]),
        sa.UniqueConstraint("pending_payment_id", name="uq_purchase_records_pending_payment"),
    )
    op.create_index("idx_purchase_records_user_content", "purchase_records", ["user_id", "content_id"])
    op.create_index("idx_purchase_records_user_purchased", "purchase_records", ["user_id", "purchased_at"])
    op.create_index(
        "uq_purchase_records_completed_title",
        "purchase_records",
        ["user_id", "content_id"],
        unique=True,
        postgresql_where=sa.text("status = 'COMPLETED' AND target_kind IN ('MOVIE','SERIES')"),
    )
    op.create_index(
        "uq_purchase_records_completed_season",
        "purchase_records",
        ["user_id", "season_id"],
        unique=True,
        postgresql_where=sa.text("status = 'COMPLETED' AND target_kind = 'SEASON'"),
    )
    op.create_index(
        "uq_purchase_records_completed_episode",
        "purchase_records",
        ["user_id", "episode_id"],
        unique=True,
        postgresql_where=sa.text("status = 'COMPLETED' AND target_kind = 'EPISODE'"),
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("delta", sa.BigInteger(), nullable=False),
        sa.Column("primary_delta", sa.BigInteger(), nullable=False),
        sa.Column("bonus_delta", sa.BigInteger(), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("idempotency_key", sa.String(128), nullable=True),
        sa.Column("purchase_record_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("pending_payment_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("primary_balance_after", sa.BigInteger(), nullable=False),
        sa.Column("bonus_balance_after", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("delta <> 0", name="ck_wallet_transactions_delta_non_zero"),
        sa.CheckConstraint(
            "delta = primary_delta + bonus_delta",
            name="ck_wallet_transactions_delta_split",
        ),
        sa.CheckConstraint(
            "kind IN ('WELCOME_BONUS','ADMIN_ADJUSTMENT','PURCHASE','REFUND','TOPUP','BONUS')",
            name="ck_wallet_transactions_kind",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["wallet_accounts.user_id"]),
        sa.ForeignKeyConstraint(["purchase_record_id"], ["purchase_records.id"]),
        sa.ForeignKeyConstraint(["pending_payment_id"], ["pending_payments.id"]),
        sa.UniqueConstraint("idempotency_key", name="uq_wallet_transactions_idempotency_key"),
    )
    op.create_index("idx_wallet_transactions_user_created", "wallet_transactions", ["user_id", "created_at"])
    op.create_index("idx_wallet_transactions_purchase", "wallet_transactions", ["purchase_record_id"])
    op.create_index("idx_wallet_transactions_pending_payment", "wallet_transactions", ["pending_payment_id"])

    op.execute(
        """
        CREATE OR REPLACE FUNCTION fn_wallet_transactions_append_only()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            RAISE EXCEPTION 'wallet_transactions is append-only';
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_wallet_transactions_append_only
        BEFORE UPDATE OR DELETE ON wallet_transactions
        FOR EACH ROW
        EXECUTE FUNCTION fn_wallet_transactions_append_only();
        """
    )

    op.create_table(
        "reconciliation_runs",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("diff_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "drifted_user_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.CheckConstraint("status IN ('OK','DIFF')", name="ck_reconciliation_runs_status"),
    )


def downgrade() -> None:
    op.drop_table("reconciliation_runs")

    op.execute("DROP TRIGGER IF EXISTS trg_wallet_transactions_append_only ON wallet_transactions;")
    op.execute("DROP FUNCTION IF EXISTS fn_wallet_transactions_append_only();")

    op.drop_index("idx_wallet_transactions_pending_payment", table_name="wallet_transactions")
    op.drop_index("idx_wallet_transactions_purchase", table_name="wallet_transactions")
    op.drop_index("idx_wallet_transactions_user_created", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")

    op.drop_index("uq_purchase_records_completed_episode", table_name="purchase_records")
    op.drop_index("uq_purchase_records_completed_season", table_name="purchase_records")
    op.drop_index("uq_purchase_records_completed_title", table_name="purchase_records")
    op.drop_index("idx_purchase_records_user_purchased", table_name="purchase_records")
    op.drop_index("idx_purchase_records_user_content", table_name="purchase_records")
    op.drop_table("purchase_records")

    op.drop_index("idx_pending_payments_pending_created", table_name="pending_payments")
    op.drop_index("idx_pending_payments_user_created", table_name="pending_payments")
    op.drop_table("pending_payments")

    op.drop_index("idx_episodes_content", table_name="episodes")
    op.drop_table("episodes")
    op.drop_table("seasons")
    op.drop_index("idx_content_items_type", table_name="content_items")
    op.drop_table("content_items")

    op.drop_table("wallet_accounts")

    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_index("idx_users_username", table_name="users")
    op.drop_table("users")
