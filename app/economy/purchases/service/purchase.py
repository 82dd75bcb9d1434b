from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import operation_scope
from app.economy.catalog.types import PurchaseTarget
from app.economy.purchases.types import PurchaseResult
from app.economy.wallet.constants import KIND_PURCHASE
from app.economy.wallet.rules import split_debit
from app.economy.wallet.service import WalletService
from app.economy.wallet.types import WalletSnapshot

from .builder import _as_purchase_result
from .grant import _ensure_not_owned, _price_target, grant_entitlement

logger = structlog.get_logger(__name__)


def _describe(target: PurchaseTarget, *, title: str) -> str:
    return f"Purchase of {target.kind.value.lower()} in {title}"


async def purchase_with_wallet(
    session: AsyncSession,
    *,
    user_id: int,
    target: PurchaseTarget,
    now_utc: datetime,
) -> PurchaseResult:
    with operation_scope(
        "purchase",
        user_id=user_id,
        target_kind=target.kind.value,
        content_id=str(target.content_id),
    ):
        content, price = await _price_target(session, target=target)

        account = await WalletService.lock_account(session, user_id=user_id)
        await _ensure_not_owned(session, user_id=user_id, target=target, content=content)
        split_debit(
            WalletSnapshot(primary=account.primary_balance, bonus=account.bonus_balance),
            amount=price,
        )

        record = await grant_entitlement(
            session,
            user_id=user_id,
            target=target,
            content=content,
            price=price,
            currency=content.currency,
            payment_method="WALLET",
            now_utc=now_utc,
        )
        debit = await WalletService.debit(
            session,
            user_id=user_id,
            amount=price,
            kind=KIND_PURCHASE,
            description=_describe(target, title=content.title),
            idempotency_key=f"purchase:{record.id}",
            purchase_record_id=record.id,
            now_utc=now_utc,
        )
        logger.info(
            "purchase_completed",
            record_id=str(record.id),
            price_paid=price,
            total_balance=debit.balance.total,
        )
        return _as_purchase_result(record, balance=debit.balance)
