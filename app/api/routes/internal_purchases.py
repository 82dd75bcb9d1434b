from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Query, Request

from app.db.session import SessionLocal
from app.economy.errors import EconomyError
from app.economy.purchases.service import PurchaseService

from .internal_helpers import (
    _assert_internal_access,
    _purchase_as_response,
    _raise_http_error,
    _refund_as_response,
)
from .internal_models import (
    PurchaseListResponse,
    PurchaseRefundResponse,
    PurchaseResponse,
    WalletPurchaseRequest,
)

router = APIRouter(tags=["internal", "purchases"])


@router.post("/internal/purchases/wallet", response_model=PurchaseResponse)
async def purchase_with_wallet(payload: WalletPurchaseRequest, request: Request) -> PurchaseResponse:
    _assert_internal_access(request)

    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PurchaseService.purchase_with_wallet(
                session,
                user_id=payload.user_id,
                target=payload.target.as_target(),
                now_utc=now_utc,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return _purchase_as_response(result)


@router.get("/internal/purchases/{user_id}", response_model=PurchaseListResponse)
async def list_user_purchases(
    user_id: int,
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> PurchaseListResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            purchases = await PurchaseService.list_purchases(
                session,
                user_id=user_id,
                limit=limit,
                offset=offset,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return PurchaseListResponse(
        user_id=user_id,
        purchases=[_purchase_as_response(item) for item in purchases],
    )


@router.post("/internal/purchases/{record_id}/refund", response_model=PurchaseRefundResponse)
async def refund_purchase(record_id: UUID, request: Request) -> PurchaseRefundResponse:
    _assert_internal_access(request)

    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await PurchaseService.refund_purchase(
                session,
                record_id=record_id,
                now_utc=now_utc,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return _refund_as_response(result)
