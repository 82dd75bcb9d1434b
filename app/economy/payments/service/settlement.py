from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import operation_scope
from app.db.models.pending_payments import PendingPayment
from app.db.repo.pending_payments_repo import PendingPaymentsRepo
from app.economy.catalog.errors import ContentNotFoundError
from app.economy.catalog.service import CatalogService
from app.economy.catalog.types import PurchaseTarget, TargetKind
from app.economy.payments.errors import DuplicateSettlementError, InvalidSignatureError
from app.economy.payments.types import (
    GatewayConfirmation,
    PaymentPurpose,
    SettlementOutcome,
    SettlementResult,
)
from app.economy.purchases.errors import AlreadyOwnedError
from app.economy.purchases.service.grant import _ensure_not_owned, grant_entitlement
from app.economy.wallet.constants import KIND_REFUND, KIND_TOPUP
from app.economy.wallet.service import WalletService
from app.services.gateway_signatures import is_valid_webhook_signature

logger = structlog.get_logger(__name__)


def _target_of(payment: PendingPayment) -> PurchaseTarget:
    return PurchaseTarget(
        kind=TargetKind(payment.target_kind),
        content_id=payment.content_id,
        season_id=payment.season_id,
        episode_id=payment.episode_id,
    )


def _ignored(
    external_ref: str,
    *,
    payment: PendingPayment | None,
    idempotent_replay: bool,
) -> SettlementResult:
    return SettlementResult(
        external_ref=external_ref,
        outcome=SettlementOutcome.IGNORED,
        payment_status=payment.status if payment is not None else None,
        purpose=payment.purpose if payment is not None else None,
        user_id=payment.user_id if payment is not None else None,
        idempotent_replay=idempotent_replay,
    )


async def _lock_pending(session: AsyncSession, *, external_ref: str) -> PendingPayment | None:
    payment = await PendingPaymentsRepo.get_by_external_ref_for_update(session, external_ref)
    if payment is not None and payment.status != "PENDING":
        raise DuplicateSettlementError(f"{external_ref} already {payment.status}")
    return payment


def _amount_matches(payment: PendingPayment, confirmation: GatewayConfirmation) -> bool:
    if confirmation.amount_unreadable:
        return False
    if confirmation.amount is not None and Decimal(confirmation.amount) < payment.amount:
        return False
    if confirmation.currency is not None and confirmation.currency != payment.currency:
        return False
    return True


async def _refund_to_primary(
    session: AsyncSession,
    *,
    payment: PendingPayment,
    reason: str,
    now_utc: datetime,
) -> SettlementResult:
    await WalletService.credit(
        session,
        user_id=payment.user_id,
        amount=payment.amount,
        kind=KIND_REFUND,
        description=f"Refund of gateway payment {payment.external_ref}: {reason}",
        idempotency_key=f"settlement_refund:{payment.id}",
        pending_payment_id=payment.id,
        now_utc=now_utc,
    )
    logger.warning(
        "payment_settlement_refunded_to_wallet",
        user_id=payment.user_id,
        amount=payment.amount,
        reason=reason,
    )
    return SettlementResult(
        external_ref=payment.external_ref,
        outcome=SettlementOutcome.REFUNDED_ALREADY_OWNED,
        payment_status=payment.status,
        purpose=payment.purpose,
        user_id=payment.user_id,
    )


async def _grant_content(
    session: AsyncSession,
    *,
    payment: PendingPayment,
    now_utc: datetime,
) -> SettlementResult:
    target = _target_of(payment)
    await WalletService.lock_account(session, user_id=payment.user_id)
    try:
        content = await CatalogService.get_content(session, content_id=target.content_id)
        await _ensure_not_owned(session, user_id=payment.user_id, target=target, content=content)
        record = await grant_entitlement(
            session,
            user_id=payment.user_id,
            target=target,
            content=content,
            price=payment.amount,
            currency=payment.currency,
            payment_method="GATEWAY",
            pending_payment_id=payment.id,
            now_utc=now_utc,
        )
    except AlreadyOwnedError:
        return await _refund_to_primary(session, payment=payment, reason="already_owned", now_utc=now_utc)
    except ContentNotFoundError:
        return await _refund_to_primary(session, payment=payment, reason="content_missing", now_utc=now_utc)

    return SettlementResult(
        external_ref=payment.external_ref,
        outcome=SettlementOutcome.CONTENT_GRANTED,
        payment_status=payment.status,
        purpose=payment.purpose,
        user_id=payment.user_id,
        purchase_record_id=record.id,
    )


async def _apply_confirmation(
    session: AsyncSession,
    *,
    payment: PendingPayment,
    confirmation: GatewayConfirmation,
    now_utc: datetime,
) -> SettlementResult:
    if confirmation.provider_transaction_id is not None:
        payment.provider_transaction_id = confirmation.provider_transaction_id
    payment.raw_confirmation = confirmation.raw
    payment.resolved_at = now_utc

    if not confirmation.success or not _amount_matches(payment, confirmation):
        payment.status = "FAILED"
        await session.flush()
        logger.info(
            "payment_settlement_failed",
            user_id=payment.user_id,
            purpose=payment.purpose,
            provider_success=confirmation.success,
            confirmed_amount=None if confirmation.amount is None else str(confirmation.amount),
            expected_amount=payment.amount,
        )
        return SettlementResult(
            external_ref=payment.external_ref,
            outcome=SettlementOutcome.FAILED,
            payment_status=payment.status,
            purpose=payment.purpose,
            user_id=payment.user_id,
        )

    payment.status = "COMPLETED"
    await session.flush()

    if payment.purpose == PaymentPurpose.WALLET_TOPUP.value:
        credit = await WalletService.credit(
            session,
            user_id=payment.user_id,
            amount=payment.amount,
            kind=KIND_TOPUP,
            description=f"Wallet top-up {payment.external_ref}",
            idempotency_key=f"topup:{payment.id}",
            pending_payment_id=payment.id,
            now_utc=now_utc,
        )
        logger.info(
            "payment_settlement_topup_credited",
            user_id=payment.user_id,
            amount=payment.amount,
            primary_balance=credit.balance.primary,
        )
        return SettlementResult(
            external_ref=payment.external_ref,
            outcome=SettlementOutcome.TOPUP_CREDITED,
            payment_status=payment.status,
            purpose=payment.purpose,
            user_id=payment.user_id,
        )

    result = await _grant_content(session, payment=payment, now_utc=now_utc)
    logger.info(
        "payment_settlement_content_settled",
        user_id=payment.user_id,
        outcome=result.outcome.value,
        purchase_record_id=str(result.purchase_record_id) if result.purchase_record_id else None,
    )
    return result


async def settle_confirmation(
    session: AsyncSession,
    *,
    confirmation: GatewayConfirmation,
    now_utc: datetime,
) -> SettlementResult:
    """Settle a confirmation that came from a verified source (gateway verify call)."""
    with operation_scope("payment_settlement", external_ref=confirmation.external_ref):
        try:
            payment = await _lock_pending(session, external_ref=confirmation.external_ref)
        except DuplicateSettlementError:
            existing = await PendingPaymentsRepo.get_by_external_ref(session, confirmation.external_ref)
            logger.info("payment_settlement_duplicate_ignored", status=getattr(existing, "status", None))
            return _ignored(confirmation.external_ref, payment=existing, idempotent_replay=True)

        if payment is None:
            logger.info("payment_settlement_unknown_ref_ignored")
            return _ignored(confirmation.external_ref, payment=None, idempotent_replay=False)

        return await _apply_confirmation(
            session,
            payment=payment,
            confirmation=confirmation,
            now_utc=now_utc,
        )


async def settle_webhook(
    session: AsyncSession,
    *,
    confirmation: GatewayConfirmation,
    signature: str | None,
    expected_secret: str,
    now_utc: datetime,
) -> SettlementResult:
    """Webhook path: absent or terminal payments are acknowledged before the signature is
    checked, an invalid signature raises ``InvalidSignatureError`` without any state change."""
    with operation_scope("payment_webhook", external_ref=confirmation.external_ref):
        try:
            payment = await _lock_pending(session, external_ref=confirmation.external_ref)
        except DuplicateSettlementError:
            existing = await PendingPaymentsRepo.get_by_external_ref(session, confirmation.external_ref)
            logger.info("payment_settlement_duplicate_ignored", status=getattr(existing, "status", None))
            return _ignored(confirmation.external_ref, payment=existing, idempotent_replay=True)

        if payment is None:
            logger.info("payment_settlement_unknown_ref_ignored")
            return _ignored(confirmation.external_ref, payment=None, idempotent_replay=False)

        if not is_valid_webhook_signature(expected_secret=expected_secret, received_signature=signature):
            raise InvalidSignatureError(f"invalid webhook signature for {confirmation.external_ref}")

        return await _apply_confirmation(
            session,
            payment=payment,
            confirmation=confirmation,
            now_utc=now_utc,
        )


async def record_verify_failure(session: AsyncSession, *, external_ref: str) -> int | None:
    try:
        payment = await _lock_pending(session, external_ref=external_ref)
    except DuplicateSettlementError:
        return None
    if payment is None:
        return None
    payment.verify_failures += 1
    await session.flush()
    return payment.verify_failures


async def remember_provider_transaction(
    session: AsyncSession,
    *,
    external_ref: str,
    provider_transaction_id: str,
) -> bool:
    """Keep the provider id of an unverified callback so the recovery job can re-verify it."""
    try:
        payment = await _lock_pending(session, external_ref=external_ref)
    except DuplicateSettlementError:
        return False
    if payment is None or payment.provider_transaction_id is not None:
        return False
    payment.provider_transaction_id = provider_transaction_id
    await session.flush()
    return True
