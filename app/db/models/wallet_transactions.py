from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_wallet_transactions_delta_non_zero"),
        CheckConstraint(
            "delta = primary_delta + bonus_delta",
            name="ck_wallet_transactions_delta_split",
        ),
        CheckConstraint(
            "kind IN ('WELCOME_BONUS','ADMIN_ADJUSTMENT','PURCHASE','REFUND','TOPUP','BONUS')",
            name="ck_wallet_transactions_kind",
        ),
        Index("idx_wallet_transactions_user_created", "user_id", "created_at"),
        Index("idx_wallet_transactions_purchase", "purchase_record_id"),
        Index("idx_wallet_transactions_pending_payment", "pending_payment_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("wallet_accounts.user_id"),
        nullable=False,
    )
    delta: Mapped[int] = mapped_column(BigInteger, nullable=False)
    primary_delta: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bonus_delta: Mapped[int] = mapped_column(BigInteger, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    purchase_record_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("purchase_records.id"),
        nullable=True,
    )
    pending_payment_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("pending_payments.id"),
        nullable=True,
    )
    primary_balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bonus_balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
