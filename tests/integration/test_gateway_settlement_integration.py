from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.models.purchases import PurchaseRecord
from app.db.models.wallet_transactions import WalletTransaction
from app.db.repo.pending_payments_repo import PendingPaymentsRepo
from app.db.session import SessionLocal
from app.economy.catalog.types import PurchaseTarget, TargetKind
from app.economy.payments.errors import InvalidSignatureError
from app.economy.payments.service import PaymentService
from app.economy.payments.types import GatewayConfirmation, SettlementOutcome
from app.economy.purchases.service import PurchaseService
from app.economy.wallet.constants import KIND_REFUND, KIND_TOPUP
from app.economy.wallet.service import WalletService
from tests.integration.ledger_fixtures import (
    UTC,
    StubGateway,
    _create_movie,
    _create_user,
    _fund_primary,
)

WEBHOOK_SECRET = "whsec-integration"


async def _start_topup(user_id: int, amount: int, *, now_utc: datetime) -> str:
    async with SessionLocal.begin() as session:
        initiation = await PaymentService.initiate_wallet_topup(
            session,
            gateway=StubGateway(),
            user_id=user_id,
            amount=amount,
            currency="RWF",
            redirect_url="https://api.example.test/payments/callback",
            now_utc=now_utc,
        )
    return initiation.external_ref


async def _start_content_payment(user_id: int, target: PurchaseTarget, *, now_utc: datetime) -> str:
    async with SessionLocal.begin() as session:
        initiation = await PaymentService.initiate_content_purchase(
            session,
            gateway=StubGateway(),
            user_id=user_id,
            target=target,
            redirect_url="https://api.example.test/payments/callback",
            now_utc=now_utc,
        )
    return initiation.external_ref


async def _settle(
    external_ref: str,
    *,
    amount: int,
    now_utc: datetime,
    success: bool = True,
    signature: str | None = WEBHOOK_SECRET,
):
    async with SessionLocal.begin() as session:
        return await PaymentService.settle_webhook(
            session,
            confirmation=GatewayConfirmation(
                external_ref=external_ref,
                success=success,
                provider_transaction_id=f"flw-{external_ref[-8:]}",
                amount=amount,
                currency="RWF",
                raw={"tx_ref": external_ref},
            ),
            signature=signature,
            expected_secret=WEBHOOK_SECRET,
            now_utc=now_utc,
        )


@pytest.mark.asyncio
async def test_topup_webhook_credits_primary_once() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-topup", welcome_bonus=100)
    external_ref = await _start_topup(user_id, 2_000, now_utc=now_utc)
    assert external_ref.startswith("WALLET-")

    first = await _settle(external_ref, amount=2_000, now_utc=now_utc)
    second = await _settle(external_ref, amount=2_000, now_utc=now_utc)

    assert first.outcome is SettlementOutcome.TOPUP_CREDITED
    assert second.outcome is SettlementOutcome.IGNORED
    assert second.idempotent_replay is True
    assert second.payment_status == "COMPLETED"

    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=user_id)
        topups = await session.scalar(
            select(func.count(WalletTransaction.id)).where(
                WalletTransaction.user_id == user_id,
                WalletTransaction.kind == KIND_TOPUP,
            )
        )
        payment = await PendingPaymentsRepo.get_by_external_ref(session, external_ref)
    assert (balance.primary, balance.bonus) == (2_000, 100)
    assert int(topups or 0) == 1
    assert payment is not None
    assert payment.status == "COMPLETED"
    assert payment.resolved_at is not None


@pytest.mark.asyncio
async def test_invalid_signature_leaves_payment_pending() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-bad-signature")
    external_ref = await _start_topup(user_id, 1_000, now_utc=now_utc)

    with pytest.raises(InvalidSignatureError):
        await _settle(external_ref, amount=1_000, now_utc=now_utc, signature="forged")

    async with SessionLocal.begin() as session:
        payment = await PendingPaymentsRepo.get_by_external_ref(session, external_ref)
        balance = await WalletService.get_balance(session, user_id=user_id)
    assert payment is not None
    assert payment.status == "PENDING"
    assert balance.primary == 0


@pytest.mark.asyncio
async def test_failed_or_underpaid_confirmation_marks_payment_failed() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-failed")
    declined_ref = await _start_topup(user_id, 1_000, now_utc=now_utc)
    underpaid_ref = await _start_topup(user_id, 1_000, now_utc=now_utc)

    declined = await _settle(declined_ref, amount=1_000, now_utc=now_utc, success=False)
    underpaid = await _settle(underpaid_ref, amount=999, now_utc=now_utc)

    assert declined.outcome is SettlementOutcome.FAILED
    assert underpaid.outcome is SettlementOutcome.FAILED

    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=user_id)
    assert balance.primary == 0


@pytest.mark.asyncio
async def test_unknown_reference_is_acknowledged_without_changes() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)

    result = await _settle("WALLET-does-not-exist", amount=500, now_utc=now_utc)

    assert result.outcome is SettlementOutcome.IGNORED
    assert result.idempotent_replay is False
    assert result.payment_status is None


@pytest.mark.asyncio
async def test_content_payment_grants_gateway_purchase_record() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-content")
    movie_id = await _create_movie(price=1_500)
    external_ref = await _start_content_payment(
        user_id,
        PurchaseTarget(kind=TargetKind.MOVIE, content_id=movie_id),
        now_utc=now_utc,
    )
    assert external_ref.startswith("CINE-")

    result = await _settle(external_ref, amount=1_500, now_utc=now_utc)

    assert result.outcome is SettlementOutcome.CONTENT_GRANTED
    assert result.purchase_record_id is not None

    async with SessionLocal.begin() as session:
        record = await session.get(PurchaseRecord, result.purchase_record_id)
        balance = await WalletService.get_balance(session, user_id=user_id)
    assert record is not None
    assert record.payment_method == "GATEWAY"
    assert record.price_paid == 1_500
    assert record.status == "COMPLETED"
    assert balance.total == 0


@pytest.mark.asyncio
async def test_content_payment_for_already_owned_title_is_refunded_to_wallet() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-owned")
    movie_id = await _create_movie(price=1_200)
    target = PurchaseTarget(kind=TargetKind.MOVIE, content_id=movie_id)
    external_ref = await _start_content_payment(user_id, target, now_utc=now_utc)

    # The title gets bought from the wallet while the gateway payment is still open.
    await _fund_primary(user_id, 1_200, seed="settle-owned")
    async with SessionLocal.begin() as session:
        await PurchaseService.purchase_with_wallet(
            session,
            user_id=user_id,
            target=target,
            now_utc=now_utc,
        )

    result = await _settle(external_ref, amount=1_200, now_utc=now_utc)

    assert result.outcome is SettlementOutcome.REFUNDED_ALREADY_OWNED

    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=user_id)
        refunds = await session.scalar(
            select(func.count(WalletTransaction.id)).where(
                WalletTransaction.user_id == user_id,
                WalletTransaction.kind == KIND_REFUND,
            )
        )
        records = await session.scalar(
            select(func.count(PurchaseRecord.id)).where(PurchaseRecord.user_id == user_id)
        )
    assert balance.primary == 1_200
    assert int(refunds or 0) == 1
    assert int(records or 0) == 1


@pytest.mark.asyncio
async def test_remembered_provider_transaction_is_kept_for_recovery() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-remember")
    external_ref = await _start_topup(user_id, 700, now_utc=now_utc)

    async with SessionLocal.begin() as session:
        stored = await PaymentService.remember_provider_transaction(
            session,
            external_ref=external_ref,
            provider_transaction_id="flw-991",
        )
        overwritten = await PaymentService.remember_provider_transaction(
            session,
            external_ref=external_ref,
            provider_transaction_id="flw-992",
        )

    assert stored is True
    assert overwritten is False

    async with SessionLocal.begin() as session:
        payment = await PendingPaymentsRepo.get_by_external_ref(session, external_ref)
    assert payment is not None
    assert payment.provider_transaction_id == "flw-991"
    assert payment.status == "PENDING"


@pytest.mark.asyncio
async def test_duplicate_content_webhook_grants_only_once() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-content-twice")
    movie_id = await _create_movie(price=900)
    external_ref = await _start_content_payment(
        user_id,
        PurchaseTarget(kind=TargetKind.MOVIE, content_id=movie_id),
        now_utc=now_utc,
    )

    first = await _settle(external_ref, amount=900, now_utc=now_utc)
    second = await _settle(external_ref, amount=900, now_utc=now_utc)

    assert first.outcome is SettlementOutcome.CONTENT_GRANTED
    assert second.outcome is SettlementOutcome.IGNORED
    assert second.idempotent_replay is True
    assert second.payment_status == "COMPLETED"

    async with SessionLocal.begin() as session:
        records = await session.scalar(
            select(func.count(PurchaseRecord.id)).where(PurchaseRecord.user_id == user_id)
        )
        wallet_rows = await session.scalar(
            select(func.count(WalletTransaction.id)).where(WalletTransaction.user_id == user_id)
        )
    assert int(records or 0) == 1
    assert int(wallet_rows or 0) == 0


@pytest.mark.asyncio
async def test_fractional_underpayment_marks_payment_failed() -> None:
    now_utc = datetime(2026, 3, 5, 12, 0, tzinfo=UTC)
    user_id = await _create_user("settle-fractional")
    external_ref = await _start_topup(user_id, 1_000, now_utc=now_utc)

    async with SessionLocal.begin() as session:
        result = await PaymentService.settle_webhook(
            session,
            confirmation=GatewayConfirmation(
                external_ref=external_ref,
                success=True,
                provider_transaction_id="flw-frac",
                amount=Decimal("999.5"),
                currency="RWF",
            ),
            signature=WEBHOOK_SECRET,
            expected_secret=WEBHOOK_SECRET,
            now_utc=now_utc,
        )

    assert result.outcome is SettlementOutcome.FAILED
    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=user_id)
    assert balance.primary == 0
