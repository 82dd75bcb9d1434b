from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request

from app.db.session import SessionLocal
from app.economy.errors import EconomyError
from app.economy.wallet.service import WalletService

from .internal_helpers import (
    _assert_internal_access,
    _balance_as_response,
    _mutation_as_response,
    _raise_http_error,
    _transaction_as_response,
)
from .internal_models import (
    WalletAdjustRequest,
    WalletBalanceResponse,
    WalletMutationResponse,
    WalletTransactionListResponse,
)

router = APIRouter(tags=["internal", "wallet"])


@router.get("/internal/wallet/{user_id}", response_model=WalletBalanceResponse)
async def get_wallet_balance(user_id: int, request: Request) -> WalletBalanceResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            balance = await WalletService.get_balance(session, user_id=user_id)
    except EconomyError as exc:
        _raise_http_error(exc)

    return _balance_as_response(balance)


@router.get(
    "/internal/wallet/{user_id}/transactions",
    response_model=WalletTransactionListResponse,
)
async def list_wallet_transactions(
    user_id: int,
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> WalletTransactionListResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            transactions = await WalletService.list_transactions(
                session,
                user_id=user_id,
                limit=limit,
                offset=offset,
            )
            items = [_transaction_as_response(transaction) for transaction in transactions]
    except EconomyError as exc:
        _raise_http_error(exc)

    return WalletTransactionListResponse(user_id=user_id, transactions=items)


@router.post("/internal/wallet/{user_id}/adjust", response_model=WalletMutationResponse)
async def adjust_wallet(
    user_id: int,
    payload: WalletAdjustRequest,
    request: Request,
) -> WalletMutationResponse:
    _assert_internal_access(request)

    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await WalletService.adjust(
                session,
                user_id=user_id,
                amount=payload.amount,
                description=payload.description,
                to_bonus=payload.to_bonus,
                idempotency_key=payload.idempotency_key,
                now_utc=now_utc,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return _mutation_as_response(result)
