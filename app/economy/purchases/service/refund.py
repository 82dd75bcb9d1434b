from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.purchase_records_repo import PurchaseRecordsRepo
from app.economy.purchases.errors import PurchaseNotFoundError
from app.economy.purchases.types import PurchaseRefundResult
from app.economy.wallet.constants import KIND_REFUND
from app.economy.wallet.service import WalletService

logger = structlog.get_logger(__name__)


async def refund_purchase(
    session: AsyncSession,
    *,
    record_id: UUID,
    now_utc: datetime,
) -> PurchaseRefundResult:
    record = await PurchaseRecordsRepo.get_by_id_for_update(session, record_id)
    if record is None:
        raise PurchaseNotFoundError(f"purchase {record_id} not found")

    if record.status == "REFUNDED":
        return PurchaseRefundResult(
            record_id=record.id,
            user_id=record.user_id,
            status=record.status,
            refunded_amount=record.price_paid,
            idempotent_replay=True,
        )

    await WalletService.lock_account(session, user_id=record.user_id)
    await PurchaseRecordsRepo.mark_refunded(session, record=record, refunded_at=now_utc)
    credit = await WalletService.credit(
        session,
        user_id=record.user_id,
        amount=record.price_paid,
        kind=KIND_REFUND,
        description=f"Refund of {record.target_kind.lower()} purchase {record.id}",
        idempotency_key=f"refund:{record.id}",
        purchase_record_id=record.id,
        now_utc=now_utc,
    )
    logger.info(
        "purchase_refunded",
        user_id=record.user_id,
        record_id=str(record.id),
        refunded_amount=record.price_paid,
        primary_balance=credit.balance.primary,
    )
    return PurchaseRefundResult(
        record_id=record.id,
        user_id=record.user_id,
        status=record.status,
        refunded_amount=record.price_paid,
        idempotent_replay=False,
        balance=credit.balance,
    )
