from __future__ import annotations

from typing import NoReturn

import structlog
from fastapi import HTTPException, Request

from app.core.config import get_settings
from app.db.models.wallet_transactions import WalletTransaction
from app.economy.access.types import AccessDecision, SeriesAccessSummary
from app.economy.catalog.errors import InvalidPricingError
from app.economy.errors import EconomyError, NotFoundError
from app.economy.payments.errors import GatewayRejectedError, GatewayUnavailableError
from app.economy.payments.types import PaymentInitiationResult
from app.economy.purchases.errors import AlreadyOwnedError, FreeContentError
from app.economy.purchases.types import PurchaseRefundResult, PurchaseResult
from app.economy.wallet.errors import (
    IdempotencyConflictError,
    InsufficientFundsError,
    InvalidAmountError,
)
from app.economy.wallet.types import WalletBalance, WalletMutationResult
from app.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)

from .internal_models import (
    AccessDecisionResponse,
    EpisodeAccessResponse,
    PaymentInitiationResponse,
    PurchaseRefundResponse,
    PurchaseResponse,
    SeriesAccessSummaryResponse,
    WalletBalanceResponse,
    WalletMutationResponse,
    WalletTransactionResponse,
)

logger = structlog.get_logger(__name__)


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_api_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_internal_request_authenticated(
        request,
        expected_token=settings.internal_api_token,
    ):
        logger.warning(
            "internal_api_auth_failed",
            reason="invalid_credentials",
            client_ip=client_ip,
        )
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _raise_http_error(exc: EconomyError) -> NoReturn:
    if isinstance(exc, InsufficientFundsError):
        raise HTTPException(
            status_code=402,
            detail={
                "code": "E_INSUFFICIENT_FUNDS",
                "required": exc.required,
                "available": exc.available,
            },
        ) from exc
    if isinstance(exc, AlreadyOwnedError):
        raise HTTPException(status_code=409, detail={"code": "E_ALREADY_OWNED"}) from exc
    if isinstance(exc, IdempotencyConflictError):
        raise HTTPException(status_code=409, detail={"code": "E_IDEMPOTENCY_CONFLICT"}) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail={"code": "E_NOT_FOUND"}) from exc
    if isinstance(exc, InvalidAmountError):
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_AMOUNT"}) from exc
    if isinstance(exc, InvalidPricingError):
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_PRICING"}) from exc
    if isinstance(exc, FreeContentError):
        raise HTTPException(status_code=422, detail={"code": "E_FREE_CONTENT"}) from exc
    if isinstance(exc, GatewayUnavailableError):
        raise HTTPException(status_code=503, detail={"code": "E_GATEWAY_UNAVAILABLE"}) from exc
    if isinstance(exc, GatewayRejectedError):
        raise HTTPException(status_code=502, detail={"code": "E_GATEWAY_REJECTED"}) from exc
    raise exc


def _balance_as_response(balance: WalletBalance) -> WalletBalanceResponse:
    return WalletBalanceResponse(
        user_id=balance.user_id,
        primary=balance.primary,
        bonus=balance.bonus,
        total=balance.total,
        currency=balance.currency,
    )


def _mutation_as_response(result: WalletMutationResult) -> WalletMutationResponse:
    return WalletMutationResponse(
        transaction_id=result.transaction_id,
        kind=result.kind,
        delta=result.delta,
        primary_delta=result.primary_delta,
        bonus_delta=result.bonus_delta,
        idempotent_replay=result.idempotent_replay,
        balance=_balance_as_response(result.balance),
    )


def _transaction_as_response(transaction: WalletTransaction) -> WalletTransactionResponse:
    return WalletTransactionResponse(
        id=transaction.id,
        kind=transaction.kind,
        delta=transaction.delta,
        primary_delta=transaction.primary_delta,
        bonus_delta=transaction.bonus_delta,
        description=transaction.description,
        primary_balance_after=transaction.primary_balance_after,
        bonus_balance_after=transaction.bonus_balance_after,
        purchase_record_id=transaction.purchase_record_id,
        pending_payment_id=transaction.pending_payment_id,
        created_at=transaction.created_at,
    )


def _purchase_as_response(result: PurchaseResult) -> PurchaseResponse:
    return PurchaseResponse(
        record_id=result.record_id,
        user_id=result.user_id,
        target_kind=result.target_kind,
        content_id=result.content_id,
        season_id=result.season_id,
        episode_id=result.episode_id,
        price_paid=result.price_paid,
        currency=result.currency,
        payment_method=result.payment_method,
        status=result.status,
        purchased_at=result.purchased_at,
        snapshot_episode_ids=list(result.snapshot_episode_ids),
        balance=_balance_as_response(result.balance) if result.balance is not None else None,
    )


def _refund_as_response(result: PurchaseRefundResult) -> PurchaseRefundResponse:
    return PurchaseRefundResponse(
        record_id=result.record_id,
        user_id=result.user_id,
        status=result.status,
        refunded_amount=result.refunded_amount,
        idempotent_replay=result.idempotent_replay,
        balance=_balance_as_response(result.balance) if result.balance is not None else None,
    )


def _decision_as_response(decision: AccessDecision) -> AccessDecisionResponse:
    return AccessDecisionResponse(
        allowed=decision.allowed,
        reason=decision.reason.value,
        message=decision.message,
    )


def _summary_as_response(summary: SeriesAccessSummary) -> SeriesAccessSummaryResponse:
    return SeriesAccessSummaryResponse(
        content_id=summary.content_id,
        access_type=summary.access_type.value,
        total_episodes=summary.total_episodes,
        unlocked_episodes=summary.unlocked_episodes,
        free_episodes=summary.free_episodes,
        total_seasons=summary.total_seasons,
        episodes=[
            EpisodeAccessResponse(
                episode_id=item.episode_id,
                season_id=item.season_id,
                episode_number=item.episode_number,
                is_free=item.is_free,
                allowed=item.decision.allowed,
                reason=item.decision.reason.value,
            )
            for item in summary.episodes
        ],
    )


def _initiation_as_response(result: PaymentInitiationResult) -> PaymentInitiationResponse:
    return PaymentInitiationResponse(
        payment_id=result.payment_id,
        external_ref=result.external_ref,
        purpose=result.purpose,
        amount=result.amount,
        currency=result.currency,
        redirect_link=result.redirect_link,
    )
