from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class WalletAccount(Base):
    __tablename__ = "wallet_accounts"
    __table_args__ = (
        CheckConstraint("primary_balance >= 0", name="ck_wallet_accounts_primary_non_negative"),
        CheckConstraint("bonus_balance >= 0", name="ck_wallet_accounts_bonus_non_negative"),
    )

    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), primary_key=True)
    primary_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    bonus_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'RWF'"))
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
