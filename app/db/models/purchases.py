from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PurchaseRecord(Base):
    __tablename__ = "purchase_records"
    __table_args__ = (
        CheckConstraint(
            "target_kind IN ('MOVIE','SERIES','SEASON','EPISODE')",
            name="ck_purchase_records_target_kind",
        ),
        CheckConstraint("status IN ('COMPLETED','REFUNDED')", name="ck_purchase_records_status"),
        CheckConstraint(
            "payment_method IN ('WALLET','GATEWAY')",
            name="ck_purchase_records_payment_method",
        ),
        CheckConstraint("price_paid > 0", name="ck_purchase_records_price_positive"),
        CheckConstraint(
            "(target_kind = 'SEASON') = (season_id IS NOT NULL)",
            name="ck_purchase_records_season_target",
        ),
        CheckConstraint(
            "(target_kind = 'EPISODE') = (episode_id IS NOT NULL)",
            name="ck_purchase_records_episode_target",
        ),
        CheckConstraint(
            "(target_kind IN ('SERIES','SEASON')) = (snapshot_episode_ids IS NOT NULL)",
            name="ck_purchase_records_snapshot_only_for_bundles",
        ),
        Index("idx_purchase_records_user_content", "user_id", "content_id"),
        Index("idx_purchase_records_user_purchased", "user_id", "purchased_at"),
        Index(
            "uq_purchase_records_completed_title",
            "user_id",
            "content_id",
            unique=True,
            postgresql_where=text("status = 'COMPLETED' AND target_kind IN ('MOVIE','SERIES')"),
        ),
        Index(
            "uq_purchase_records_completed_season",
            "user_id",
            "season_id",
            unique=True,
            postgresql_where=text("status = 'COMPLETED' AND target_kind = 'SEASON'"),
        ),
        Index(
            "uq_purchase_records_completed_episode",
            "user_id",
            "episode_id",
            unique=True,
            postgresql_where=text("status = 'COMPLETED' AND target_kind = 'EPISODE'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    target_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    content_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("content_items.id"),
        nullable=False,
    )
    season_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("seasons.id"),
        nullable=True,
    )
    episode_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("episodes.id"),
        nullable=True,
    )
    price_paid: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False)
    pending_payment_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("pending_payments.id"),
        unique=True,
        nullable=True,
    )
    snapshot_episode_ids: Mapped[list[UUID] | None] = mapped_column(
        ARRAY(PG_UUID(as_uuid=True)),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
