from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.pending_payments_repo import PendingPaymentsRepo
from app.economy.payments.types import GatewayConfirmation, SettlementOutcome, SettlementResult
from app.services.payment_gateway import PaymentGatewayClient

from .settlement import settle_confirmation

logger = structlog.get_logger(__name__)


async def verify_callback(
    *,
    gateway: PaymentGatewayClient,
    external_ref: str,
    provider_transaction_id: str,
) -> GatewayConfirmation | None:
    """Ask the gateway about the redirect's transaction, outside any DB transaction.

    Returns ``None`` when the verified transaction belongs to another reference.
    ``GatewayUnavailableError`` propagates untouched so the payment stays pending.
    """
    confirmation = await gateway.verify(provider_transaction_id=provider_transaction_id)
    if confirmation.external_ref != external_ref:
        logger.warning(
            "payment_callback_ref_mismatch",
            external_ref=external_ref,
            verified_external_ref=confirmation.external_ref,
        )
        return None
    return confirmation


async def settle_callback(
    session: AsyncSession,
    *,
    external_ref: str,
    confirmation: GatewayConfirmation | None,
    now_utc: datetime,
) -> SettlementResult:
    if confirmation is None:
        payment = await PendingPaymentsRepo.get_by_external_ref(session, external_ref)
        return SettlementResult(
            external_ref=external_ref,
            outcome=SettlementOutcome.IGNORED,
            payment_status=payment.status if payment is not None else None,
            purpose=payment.purpose if payment is not None else None,
            user_id=payment.user_id if payment is not None else None,
        )
    return await settle_confirmation(session, confirmation=confirmation, now_utc=now_utc)
