from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from app.economy.wallet.types import WalletBalance


@dataclass(slots=True)
class PurchaseResult:
    record_id: UUID
    user_id: int
    target_kind: str
    content_id: UUID
    season_id: UUID | None
    episode_id: UUID | None
    price_paid: int
    currency: str
    payment_method: str
    status: str
    purchased_at: datetime
    snapshot_episode_ids: list[UUID] = field(default_factory=list)
    balance: WalletBalance | None = None


@dataclass(slots=True)
class PurchaseRefundResult:
    record_id: UUID
    user_id: int
    status: str
    refunded_amount: int
    idempotent_replay: bool
    balance: WalletBalance | None = None
