from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from app.db.models.purchases import PurchaseRecord
from app.economy.catalog.types import PurchaseTarget
from app.economy.purchases.types import PurchaseResult
from app.economy.wallet.types import WalletBalance


def _build_record(
    target: PurchaseTarget,
    *,
    user_id: int,
    price_paid: int,
    currency: str,
    payment_method: str,
    snapshot_episode_ids: list[UUID] | None,
    pending_payment_id: UUID | None,
    now_utc: datetime,
) -> PurchaseRecord:
    return PurchaseRecord(
        id=uuid4(),
        user_id=user_id,
        target_kind=target.kind.value,
        content_id=target.content_id,
        season_id=target.season_id,
        episode_id=target.episode_id,
        price_paid=price_paid,
        currency=currency,
        payment_method=payment_method,
        pending_payment_id=pending_payment_id,
        snapshot_episode_ids=snapshot_episode_ids,
        status="COMPLETED",
        purchased_at=now_utc,
        refunded_at=None,
    )


def _as_purchase_result(
    record: PurchaseRecord,
    *,
    balance: WalletBalance | None = None,
) -> PurchaseResult:
    return PurchaseResult(
        record_id=record.id,
        user_id=record.user_id,
        target_kind=record.target_kind,
        content_id=record.content_id,
        season_id=record.season_id,
        episode_id=record.episode_id,
        price_paid=record.price_paid,
        currency=record.currency,
        payment_method=record.payment_method,
        status=record.status,
        purchased_at=record.purchased_at,
        snapshot_episode_ids=list(record.snapshot_episode_ids or []),
        balance=balance,
    )
