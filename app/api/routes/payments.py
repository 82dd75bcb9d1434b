from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.payments.errors import (
    GatewayRejectedError,
    GatewayUnavailableError,
    InvalidSignatureError,
)
from app.economy.payments.service import PaymentService
from app.economy.payments.types import SettlementOutcome
from app.services.gateway_signatures import WEBHOOK_SIGNATURE_HEADER, extract_webhook_confirmation
from app.services.payment_gateway import PaymentGatewayClient

router = APIRouter(tags=["payments"])
logger = structlog.get_logger(__name__)

SUCCESS_OUTCOMES = frozenset(
    {
        SettlementOutcome.TOPUP_CREDITED,
        SettlementOutcome.CONTENT_GRANTED,
        SettlementOutcome.REFUNDED_ALREADY_OWNED,
    }
)


def _build_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient.from_settings()


def _client_redirect(page: str, *, external_ref: str | None) -> RedirectResponse:
    base_url = get_settings().client_url.rstrip("/")
    return RedirectResponse(
        url=f"{base_url}/payment/{page}?ref={external_ref or ''}",
        status_code=status.HTTP_302_FOUND,
    )


def _ignored(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ignored", "reason": reason},
    )


async def _remember_unverified_callback(*, external_ref: str, provider_transaction_id: str) -> None:
    async with SessionLocal.begin() as session:
        await PaymentService.remember_provider_transaction(
            session,
            external_ref=external_ref,
            provider_transaction_id=provider_transaction_id,
        )


@router.get("/payments/callback")
async def payment_callback(
    status_param: str | None = Query(default=None, alias="status"),
    tx_ref: str | None = Query(default=None),
    transaction_id: str | None = Query(default=None),
) -> RedirectResponse:
    if status_param not in {"successful", "completed"} or not tx_ref or not transaction_id:
        logger.info("payment_callback_not_successful", external_ref=tx_ref, status=status_param)
        return _client_redirect("failed", external_ref=tx_ref)

    now_utc = datetime.now(timezone.utc)
    try:
        confirmation = await PaymentService.verify_callback(
            gateway=_build_gateway(),
            external_ref=tx_ref,
            provider_transaction_id=transaction_id,
        )
    except GatewayUnavailableError:
        logger.warning("payment_callback_gateway_unavailable", external_ref=tx_ref)
        await _remember_unverified_callback(
            external_ref=tx_ref,
            provider_transaction_id=transaction_id,
        )
        return _client_redirect("pending", external_ref=tx_ref)
    except GatewayRejectedError:
        logger.warning("payment_callback_verification_rejected", external_ref=tx_ref)
        return _client_redirect("failed", external_ref=tx_ref)

    async with SessionLocal.begin() as session:
        result = await PaymentService.settle_callback(
            session,
            external_ref=tx_ref,
            confirmation=confirmation,
            now_utc=now_utc,
        )

    if result.outcome in SUCCESS_OUTCOMES:
        return _client_redirect("success", external_ref=tx_ref)
    if result.outcome is SettlementOutcome.IGNORED and result.payment_status == "COMPLETED":
        return _client_redirect("success", external_ref=tx_ref)
    return _client_redirect("failed", external_ref=tx_ref)


@router.post("/payments/webhook")
async def payment_webhook(request: Request) -> JSONResponse:
    try:
        payload = await request.json()
    except Exception:
        logger.warning("payment_webhook_invalid_json")
        return _ignored("invalid_json")

    confirmation = extract_webhook_confirmation(payload)
    if confirmation is None:
        logger.info("payment_webhook_event_ignored")
        return _ignored("unsupported_event")

    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PaymentService.settle_webhook(
                session,
                confirmation=confirmation,
                signature=request.headers.get(WEBHOOK_SIGNATURE_HEADER),
                expected_secret=get_settings().gateway_webhook_secret_hash,
                now_utc=now_utc,
            )
    except InvalidSignatureError:
        logger.warning("payment_webhook_invalid_signature", external_ref=confirmation.external_ref)
        return _ignored("invalid_signature")
    except Exception as exc:
        logger.exception(
            "payment_webhook_processing_failed",
            external_ref=confirmation.external_ref,
            error_type=type(exc).__name__,
        )
        return _ignored("processing_failed")

    if result.outcome is SettlementOutcome.IGNORED:
        return _ignored("already_settled" if result.idempotent_replay else "unknown_reference")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ok", "outcome": result.outcome.value},
    )
