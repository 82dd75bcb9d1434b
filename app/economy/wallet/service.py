from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.wallet_accounts import WalletAccount
from app.db.models.wallet_transactions import WalletTransaction
from app.db.repo.wallet_repo import WalletRepo
from app.economy.errors import UserNotFoundError
from app.economy.wallet.constants import (
    KIND_ADMIN_ADJUSTMENT,
    KIND_BONUS,
    KIND_WELCOME_BONUS,
    WELCOME_BONUS_DESCRIPTION,
)
from app.economy.wallet.errors import IdempotencyConflictError, InvalidAmountError
from app.economy.wallet.rules import (
    apply_credit,
    apply_debit,
    split_debit,
    validate_amount,
    validate_kind,
)
from app.economy.wallet.types import WalletBalance, WalletMutationResult, WalletSnapshot

logger = structlog.get_logger(__name__)


def _snapshot(account: WalletAccount) -> WalletSnapshot:
    return WalletSnapshot(primary=account.primary_balance, bonus=account.bonus_balance)


def _as_balance(account: WalletAccount) -> WalletBalance:
    return WalletBalance(
        user_id=account.user_id,
        primary=account.primary_balance,
        bonus=account.bonus_balance,
        total=account.primary_balance + account.bonus_balance,
        currency=account.currency,
    )


def _as_replay(account: WalletAccount, transaction: WalletTransaction) -> WalletMutationResult:
    return WalletMutationResult(
        user_id=account.user_id,
        transaction_id=transaction.id,
        kind=transaction.kind,
        delta=transaction.delta,
        primary_delta=transaction.primary_delta,
        bonus_delta=transaction.bonus_delta,
        balance=_as_balance(account),
        idempotent_replay=True,
    )


class WalletService:
    @staticmethod
    async def _lock_account(session: AsyncSession, *, user_id: int) -> WalletAccount:
        account = await WalletRepo.get_account_for_update(session, user_id)
        if account is None:
            raise UserNotFoundError(f"wallet for user {user_id} does not exist")
        return account

    @staticmethod
    async def lock_account(session: AsyncSession, *, user_id: int) -> WalletAccount:
        """Take the per-user wallet row lock for the rest of the caller's transaction."""
        return await WalletService._lock_account(session, user_id=user_id)

    @staticmethod
    async def _find_replay(
        session: AsyncSession,
        *,
        account: WalletAccount,
        idempotency_key: str | None,
        kind: str,
        delta: int,
    ) -> WalletMutationResult | None:
        if idempotency_key is None:
            return None
        existing = await WalletRepo.get_transaction_by_idempotency_key(session, idempotency_key)
        if existing is None:
            return None
        if existing.user_id != account.user_id or existing.kind != kind or existing.delta != delta:
            logger.warning(
                "wallet_idempotency_conflict",
                user_id=account.user_id,
                idempotency_key=idempotency_key,
                kind=kind,
                delta=delta,
            )
            raise IdempotencyConflictError(f"idempotency key {idempotency_key!r} is already used")
        logger.info(
            "wallet_mutation_replayed",
            user_id=account.user_id,
            idempotency_key=idempotency_key,
            kind=existing.kind,
        )
        return _as_replay(account, existing)

    @staticmethod
    async def _append(
        session: AsyncSession,
        *,
        account: WalletAccount,
        updated: WalletSnapshot,
        kind: str,
        description: str,
        idempotency_key: str | None,
        purchase_record_id: UUID | None,
        pending_payment_id: UUID | None,
        now_utc: datetime,
    ) -> WalletMutationResult:
        primary_delta = updated.primary - account.primary_balance
        bonus_delta = updated.bonus - account.bonus_balance

        account.primary_balance = updated.primary
        account.bonus_balance = updated.bonus
        account.version += 1
        account.updated_at = now_utc

        transaction = await WalletRepo.create_transaction(
            session,
            transaction=WalletTransaction(
                user_id=account.user_id,
                delta=primary_delta + bonus_delta,
                primary_delta=primary_delta,
                bonus_delta=bonus_delta,
                kind=kind,
                description=description,
                idempotency_key=idempotency_key,
                purchase_record_id=purchase_record_id,
                pending_payment_id=pending_payment_id,
                primary_balance_after=updated.primary,
                bonus_balance_after=updated.bonus,
                created_at=now_utc,
            ),
        )
        return WalletMutationResult(
            user_id=account.user_id,
            transaction_id=transaction.id,
            kind=kind,
            delta=transaction.delta,
            primary_delta=primary_delta,
            bonus_delta=bonus_delta,
            balance=_as_balance(account),
            idempotent_replay=False,
        )

    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        user_id: int,
        amount: int,
        kind: str,
        description: str,
        now_utc: datetime,
        to_bonus: bool = False,
        idempotency_key: str | None = None,
        purchase_record_id: UUID | None = None,
        pending_payment_id: UUID | None = None,
    ) -> WalletMutationResult:
        validate_amount(amount)
        validate_kind(kind)
        account = await WalletService._lock_account(session, user_id=user_id)

        replay = await WalletService._find_replay(
            session,
            account=account,
            idempotency_key=idempotency_key,
            kind=kind,
            delta=amount,
        )
        if replay is not None:
            return replay

        updated = apply_credit(_snapshot(account), amount=amount, to_bonus=to_bonus)
        result = await WalletService._append(
            session,
            account=account,
            updated=updated,
            kind=kind,
            description=description,
            idempotency_key=idempotency_key,
            purchase_record_id=purchase_record_id,
            pending_payment_id=pending_payment_id,
            now_utc=now_utc,
        )
        logger.info(
            "wallet_credit_applied",
            user_id=user_id,
            kind=kind,
            amount=amount,
            pool="bonus" if to_bonus else "primary",
            primary_balance=result.balance.primary,
            bonus_balance=result.balance.bonus,
        )
        return result

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        user_id: int,
        amount: int,
        kind: str,
        description: str,
        now_utc: datetime,
        idempotency_key: str | None = None,
        purchase_record_id: UUID | None = None,
    ) -> WalletMutationResult:
        validate_amount(amount)
        validate_kind(kind)
        account = await WalletService._lock_account(session, user_id=user_id)

        replay = await WalletService._find_replay(
            session,
            account=account,
            idempotency_key=idempotency_key,
            kind=kind,
            delta=-amount,
        )
        if replay is not None:
            return replay

        snapshot = _snapshot(account)
        split = split_debit(snapshot, amount=amount)
        result = await WalletService._append(
            session,
            account=account,
            updated=apply_debit(snapshot, split),
            kind=kind,
            description=description,
            idempotency_key=idempotency_key,
            purchase_record_id=purchase_record_id,
            pending_payment_id=None,
            now_utc=now_utc,
        )
        logger.info(
            "wallet_debit_applied",
            user_id=user_id,
            kind=kind,
            amount=amount,
            from_bonus=split.bonus,
            from_primary=split.primary,
            primary_balance=result.balance.primary,
            bonus_balance=result.balance.bonus,
        )
        return result

    @staticmethod
    async def get_balance(session: AsyncSession, *, user_id: int) -> WalletBalance:
        account = await WalletRepo.get_account(session, user_id)
        if account is None:
            raise UserNotFoundError(f"wallet for user {user_id} does not exist")
        return _as_balance(account)

    @staticmethod
    async def list_transactions(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WalletTransaction]:
        account = await WalletRepo.get_account(session, user_id)
        if account is None:
            raise UserNotFoundError(f"wallet for user {user_id} does not exist")
        return await WalletRepo.list_transactions(
            session,
            user_id=user_id,
            limit=limit,
            offset=offset,
        )

    @staticmethod
    async def open_account(
        session: AsyncSession,
        *,
        user_id: int,
        currency: str,
        welcome_bonus: int,
        now_utc: datetime,
    ) -> WalletBalance:
        created = await WalletRepo.ensure_account(
            session,
            user_id=user_id,
            currency=currency,
            now_utc=now_utc,
        )
        if welcome_bonus > 0:
            result = await WalletService.credit(
                session,
                user_id=user_id,
                amount=welcome_bonus,
                kind=KIND_WELCOME_BONUS,
                description=WELCOME_BONUS_DESCRIPTION,
                to_bonus=True,
                idempotency_key=f"welcome_bonus:{user_id}",
                now_utc=now_utc,
            )
            balance = result.balance
        else:
            balance = await WalletService.get_balance(session, user_id=user_id)

        if created:
            logger.info(
                "wallet_account_opened",
                user_id=user_id,
                currency=currency,
                welcome_bonus=welcome_bonus,
            )
        return balance

    @staticmethod
    async def adjust(
        session: AsyncSession,
        *,
        user_id: int,
        amount: int,
        description: str,
        now_utc: datetime,
        to_bonus: bool = False,
        idempotency_key: str | None = None,
    ) -> WalletMutationResult:
        """Admin correction: positive amounts credit the chosen pool (a bonus-pool credit is
        recorded as a BONUS grant), negative amounts debit with the regular spend order."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise InvalidAmountError(f"adjustment must be a non-zero integer, got {amount!r}")
        # Caller keys get their own namespace, apart from ledger-internal keys.
        scoped_key = f"adjust:{user_id}:{idempotency_key}" if idempotency_key is not None else None

        if amount > 0:
            return await WalletService.credit(
                session,
                user_id=user_id,
                amount=amount,
                kind=KIND_BONUS if to_bonus else KIND_ADMIN_ADJUSTMENT,
                description=description,
                to_bonus=to_bonus,
                idempotency_key=scoped_key,
                now_utc=now_utc,
            )
        return await WalletService.debit(
            session,
            user_id=user_id,
            amount=-amount,
            kind=KIND_ADMIN_ADJUSTMENT,
            description=description,
            idempotency_key=scoped_key,
            now_utc=now_utc,
        )
