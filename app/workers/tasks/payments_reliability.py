from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog

from app.db.repo.pending_payments_repo import PendingPaymentsRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.repo.wallet_repo import WalletRepo
from app.db.session import SessionLocal
from app.economy.payments.errors import GatewayRejectedError, GatewayUnavailableError
from app.economy.payments.service import PaymentService
from app.economy.payments.types import SettlementOutcome
from app.services.alerts import send_ops_alert
from app.services.payment_gateway import PaymentGatewayClient
from app.services.payments_reliability import (
    build_wallet_drifts,
    compute_reconciliation_diff,
    reconciliation_status,
)
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app
from app.workers.tasks.payments_reliability_schedule import configure_payments_reliability_schedule

logger = structlog.get_logger(__name__)

MAX_VERIFY_FAILURES = 5


async def _recover_single_payment(
    *,
    payment_id: UUID,
    gateway: PaymentGatewayClient,
    now_utc: datetime,
) -> str:
    async with SessionLocal.begin() as session:
        payment = await PendingPaymentsRepo.get_by_id(session, payment_id)
        if payment is None:
            return "missing"
        if payment.status != "PENDING" or payment.provider_transaction_id is None:
            return "skipped"
        external_ref = payment.external_ref
        provider_transaction_id = payment.provider_transaction_id

    try:
        confirmation = await gateway.verify(provider_transaction_id=provider_transaction_id)
    except GatewayUnavailableError:
        async with SessionLocal.begin() as session:
            failures = await PaymentService.record_verify_failure(session, external_ref=external_ref)
        if failures is not None and failures >= MAX_VERIFY_FAILURES:
            return "review"
        return "unavailable"
    except GatewayRejectedError:
        async with SessionLocal.begin() as session:
            await PaymentService.record_verify_failure(session, external_ref=external_ref)
        return "review"

    if confirmation.external_ref != external_ref:
        logger.warning(
            "pending_payment_recovery_ref_mismatch",
            external_ref=external_ref,
            verified_external_ref=confirmation.external_ref,
        )
        return "review"

    async with SessionLocal.begin() as session:
        result = await PaymentService.settle_confirmation(
            session,
            confirmation=confirmation,
            now_utc=now_utc,
        )

    if result.outcome is SettlementOutcome.FAILED:
        return "failed"
    if result.outcome is SettlementOutcome.IGNORED:
        return "skipped"
    return "completed"


async def recover_stale_pending_payments_async(
    *,
    batch_size: int = 100,
    stale_minutes: int = 10,
    gateway: PaymentGatewayClient | None = None,
) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    stale_cutoff = now_utc - timedelta(minutes=stale_minutes)
    resolved_gateway = gateway or PaymentGatewayClient.from_settings()

    async with SessionLocal.begin() as session:
        candidates = await PendingPaymentsRepo.list_stale_pending(
            session,
            older_than_utc=stale_cutoff,
            limit=batch_size,
        )
        candidate_ids = [payment.id for payment in candidates]

    summary: dict[str, int] = {
        "examined": len(candidate_ids),
        "completed": 0,
        "failed": 0,
        "unavailable": 0,
        "review": 0,
        "skipped": 0,
        "missing": 0,
        "errors": 0,
    }

    for payment_id in candidate_ids:
        try:
            outcome = await _recover_single_payment(
                payment_id=payment_id,
                gateway=resolved_gateway,
                now_utc=now_utc,
            )
        except Exception:
            summary["errors"] += 1
            logger.exception("pending_payment_recovery_error", payment_id=str(payment_id))
            continue

        summary[outcome] = summary.get(outcome, 0) + 1

    if summary["review"] > 0 or summary["errors"] > 0:
        await send_ops_alert(
            event="payments_recovery_review_required",
            payload=summary,
        )

    logger.info("pending_payment_recovery_finished", **summary)
    return summary


async def run_wallet_reconciliation_async() -> dict[str, int | str]:
    started_at = datetime.now(timezone.utc)

    async with SessionLocal.begin() as session:
        drifts = build_wallet_drifts(await WalletRepo.list_balance_drift(session))
        stuck_pending_count = await PendingPaymentsRepo.count_stuck_pending(
            session,
            min_verify_failures=MAX_VERIFY_FAILURES,
        )
        diff_count = compute_reconciliation_diff(
            drifted_accounts=len(drifts),
            stuck_pending_count=stuck_pending_count,
        )
        status = reconciliation_status(diff_count)

        await ReconciliationRunsRepo.create(
            session,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            status=status,
            diff_count=diff_count,
            drifted_user_ids=[drift.user_id for drift in drifts],
        )

    result: dict[str, int | str] = {
        "drifted_accounts": len(drifts),
        "stuck_pending_count": stuck_pending_count,
        "diff_count": diff_count,
        "status": status,
    }
    if diff_count > 0:
        await send_ops_alert(
            event="wallet_reconciliation_drift_detected",
            payload={**result, "drifted_user_ids": [drift.user_id for drift in drifts[:50]]},
        )
        logger.warning("wallet_reconciliation_drift_detected", **result)
    else:
        logger.info("wallet_reconciliation_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.payments_reliability.recover_stale_pending_payments")
def recover_stale_pending_payments(batch_size: int = 100, stale_minutes: int = 10) -> dict[str, int]:
    return run_async_job(
        recover_stale_pending_payments_async(
            batch_size=batch_size,
            stale_minutes=stale_minutes,
        )
    )


@celery_app.task(name="app.workers.tasks.payments_reliability.run_wallet_reconciliation")
def run_wallet_reconciliation() -> dict[str, int | str]:
    return run_async_job(run_wallet_reconciliation_async())


configure_payments_reliability_schedule(celery_app)
