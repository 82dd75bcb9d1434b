from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from app.db.session import SessionLocal
from app.economy.errors import EconomyError
from app.economy.payments.service import PaymentService
from app.services.payment_gateway import PaymentGatewayClient

from .internal_helpers import (
    _assert_internal_access,
    _initiation_as_response,
    _raise_http_error,
    get_settings,
)
from .internal_models import ContentPaymentRequest, PaymentInitiationResponse, WalletTopupRequest

router = APIRouter(tags=["internal", "payments"])


def _build_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient.from_settings()


@router.post("/internal/payments/topup", response_model=PaymentInitiationResponse)
async def initiate_wallet_topup(
    payload: WalletTopupRequest,
    request: Request,
) -> PaymentInitiationResponse:
    _assert_internal_access(request)

    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PaymentService.initiate_wallet_topup(
                session,
                gateway=_build_gateway(),
                user_id=payload.user_id,
                amount=payload.amount,
                currency=settings.ledger_currency,
                redirect_url=settings.gateway_redirect_url,
                now_utc=now_utc,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return _initiation_as_response(result)


@router.post("/internal/payments/content", response_model=PaymentInitiationResponse)
async def initiate_content_payment(
    payload: ContentPaymentRequest,
    request: Request,
) -> PaymentInitiationResponse:
    _assert_internal_access(request)

    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PaymentService.initiate_content_purchase(
                session,
                gateway=_build_gateway(),
                user_id=payload.user_id,
                target=payload.target.as_target(),
                redirect_url=settings.gateway_redirect_url,
                now_utc=now_utc,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return _initiation_as_response(result)
