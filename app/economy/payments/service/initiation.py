from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.pending_payments import PendingPayment
from app.db.models.users import User
from app.db.repo.pending_payments_repo import PendingPaymentsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.catalog.types import PurchaseTarget
from app.economy.errors import UserNotFoundError
from app.economy.payments.types import (
    EXTERNAL_REF_PREFIXES,
    PaymentInitiationResult,
    PaymentPurpose,
)
from app.economy.purchases.service.grant import _ensure_not_owned, _price_target
from app.economy.wallet.rules import validate_amount
from app.services.payment_gateway import GatewayCustomer, PaymentGatewayClient

logger = structlog.get_logger(__name__)


def build_external_ref(purpose: PaymentPurpose) -> str:
    return f"{EXTERNAL_REF_PREFIXES[purpose]}-{uuid4()}"


def _customer_of(user: User) -> GatewayCustomer:
    return GatewayCustomer(
        phone_number=user.phone_number,
        name=user.username or user.phone_number,
    )


async def _load_user(session: AsyncSession, *, user_id: int) -> User:
    user = await UsersRepo.get_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError(f"user {user_id} not found")
    return user


async def _start_payment(
    session: AsyncSession,
    *,
    gateway: PaymentGatewayClient,
    payment: PendingPayment,
    user: User,
    redirect_url: str,
    title: str,
    description: str,
) -> PaymentInitiationResult:
    await PendingPaymentsRepo.create(session, payment=payment)
    initiation = await gateway.initiate(
        external_ref=payment.external_ref,
        amount=payment.amount,
        currency=payment.currency,
        redirect_url=redirect_url,
        customer=_customer_of(user),
        title=title,
        description=description,
        metadata={
            "user_id": user.id,
            "purpose": payment.purpose,
            "content_id": str(payment.content_id) if payment.content_id is not None else None,
        },
    )
    payment.redirect_link = initiation.redirect_link
    await session.flush()

    logger.info(
        "payment_initiated",
        user_id=user.id,
        external_ref=payment.external_ref,
        purpose=payment.purpose,
        amount=payment.amount,
    )
    return PaymentInitiationResult(
        payment_id=payment.id,
        external_ref=payment.external_ref,
        purpose=payment.purpose,
        amount=payment.amount,
        currency=payment.currency,
        redirect_link=initiation.redirect_link,
    )


async def initiate_wallet_topup(
    session: AsyncSession,
    *,
    gateway: PaymentGatewayClient,
    user_id: int,
    amount: int,
    currency: str,
    redirect_url: str,
    now_utc: datetime,
) -> PaymentInitiationResult:
    validate_amount(amount)
    user = await _load_user(session, user_id=user_id)
    payment = PendingPayment(
        id=uuid4(),
        user_id=user.id,
        external_ref=build_external_ref(PaymentPurpose.WALLET_TOPUP),
        purpose=PaymentPurpose.WALLET_TOPUP.value,
        amount=amount,
        currency=currency,
        status="PENDING",
        verify_failures=0,
        created_at=now_utc,
    )
    return await _start_payment(
        session,
        gateway=gateway,
        payment=payment,
        user=user,
        redirect_url=redirect_url,
        title="Wallet Top-Up",
        description=f"Add {amount} {currency} to your wallet",
    )


async def initiate_content_purchase(
    session: AsyncSession,
    *,
    gateway: PaymentGatewayClient,
    user_id: int,
    target: PurchaseTarget,
    redirect_url: str,
    now_utc: datetime,
) -> PaymentInitiationResult:
    user = await _load_user(session, user_id=user_id)
    content, price = await _price_target(session, target=target)
    await _ensure_not_owned(session, user_id=user.id, target=target, content=content)

    payment = PendingPayment(
        id=uuid4(),
        user_id=user.id,
        external_ref=build_external_ref(PaymentPurpose.CONTENT_PURCHASE),
        purpose=PaymentPurpose.CONTENT_PURCHASE.value,
        amount=price,
        currency=content.currency,
        status="PENDING",
        target_kind=target.kind.value,
        content_id=target.content_id,
        season_id=target.season_id,
        episode_id=target.episode_id,
        verify_failures=0,
        created_at=now_utc,
    )
    return await _start_payment(
        session,
        gateway=gateway,
        payment=payment,
        user=user,
        redirect_url=redirect_url,
        title="Content Purchase",
        description=f"Purchase of {content.title}",
    )
