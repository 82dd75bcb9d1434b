from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PendingPayment(Base):
    __tablename__ = "pending_payments"
    __table_args__ = (
        CheckConstraint(
            "purpose IN ('WALLET_TOPUP','CONTENT_PURCHASE')",
            name="ck_pending_payments_purpose",
        ),
        CheckConstraint(
            "status IN ('PENDING','COMPLETED','FAILED')",
            name="ck_pending_payments_status",
        ),
        CheckConstraint("amount > 0", name="ck_pending_payments_amount_positive"),
        CheckConstraint(
            "(purpose = 'CONTENT_PURCHASE') = (content_id IS NOT NULL)",
            name="ck_pending_payments_content_target",
        ),
        Index("idx_pending_payments_user_created", "user_id", "created_at"),
        Index(
            "idx_pending_payments_pending_created",
            "created_at",
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    external_ref: Mapped[str] = mapped_column(String(96), unique=True, nullable=False)
    purpose: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    target_kind: Mapped[str | None] = mapped_column(String(16), nullable=True)
    content_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("content_items.id"),
        nullable=True,
    )
    season_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    episode_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    provider_transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    redirect_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_confirmation: Mapped[dict[str, object] | None] = mapped_column(JSONB, nullable=True)
    verify_failures: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
