from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import DBAPIError

from app.db.models.wallet_transactions import WalletTransaction
from app.db.session import SessionLocal
from app.economy.wallet.constants import KIND_BONUS, KIND_PURCHASE, KIND_WELCOME_BONUS
from app.economy.wallet.errors import IdempotencyConflictError, InsufficientFundsError
from app.economy.wallet.service import WalletService
from tests.integration.ledger_fixtures import UTC, _create_user, _fund_primary


@pytest.mark.asyncio
async def test_open_account_grants_welcome_bonus_once() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    user_id = await _create_user("wallet-welcome", welcome_bonus=100)

    async with SessionLocal.begin() as session:
        balance = await WalletService.open_account(
            session,
            user_id=user_id,
            currency="RWF",
            welcome_bonus=100,
            now_utc=now_utc,
        )

    assert (balance.primary, balance.bonus, balance.total) == (0, 100, 100)

    async with SessionLocal.begin() as session:
        bonus_rows = await session.scalar(
            select(func.count(WalletTransaction.id)).where(
                WalletTransaction.user_id == user_id,
                WalletTransaction.kind == KIND_WELCOME_BONUS,
            )
        )
    assert int(bonus_rows or 0) == 1


@pytest.mark.asyncio
async def test_debit_spends_bonus_before_primary_and_records_balances_after() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    user_id = await _create_user("wallet-debit-order", welcome_bonus=100)
    await _fund_primary(user_id, 400, seed="wallet-debit-order")

    async with SessionLocal.begin() as session:
        result = await WalletService.debit(
            session,
            user_id=user_id,
            amount=250,
            kind=KIND_PURCHASE,
            description="Debit order check",
            idempotency_key="wallet-debit-order:1",
            now_utc=now_utc,
        )

    assert result.bonus_delta == -100
    assert result.primary_delta == -150
    assert result.delta == -250
    assert (result.balance.primary, result.balance.bonus) == (250, 0)

    async with SessionLocal.begin() as session:
        row = await session.get(WalletTransaction, result.transaction_id)
        assert row is not None
        assert row.primary_balance_after == 250
        assert row.bonus_balance_after == 0


@pytest.mark.asyncio
async def test_debit_replay_with_same_idempotency_key_is_not_applied_twice() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    user_id = await _create_user("wallet-debit-replay")
    await _fund_primary(user_id, 500, seed="wallet-debit-replay")

    results = []
    for _ in range(2):
        async with SessionLocal.begin() as session:
            results.append(
                await WalletService.debit(
                    session,
                    user_id=user_id,
                    amount=200,
                    kind=KIND_PURCHASE,
                    description="Replay check",
                    idempotency_key="wallet-debit-replay:1",
                    now_utc=now_utc,
                )
            )

    first, second = results
    assert first.idempotent_replay is False
    assert second.idempotent_replay is True
    assert second.transaction_id == first.transaction_id

    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=user_id)
    assert balance.primary == 300


@pytest.mark.asyncio
async def test_debit_beyond_total_raises_and_leaves_balances_unchanged() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    user_id = await _create_user("wallet-insufficient", welcome_bonus=100)
    await _fund_primary(user_id, 50, seed="wallet-insufficient")

    with pytest.raises(InsufficientFundsError) as exc_info:
        async with SessionLocal.begin() as session:
            await WalletService.debit(
                session,
                user_id=user_id,
                amount=151,
                kind=KIND_PURCHASE,
                description="Too expensive",
                now_utc=now_utc,
            )

    assert exc_info.value.required == 151
    assert exc_info.value.available == 150

    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=user_id)
        transactions = await WalletService.list_transactions(session, user_id=user_id)
    assert (balance.primary, balance.bonus) == (50, 100)
    assert all(item.kind != KIND_PURCHASE for item in transactions)


@pytest.mark.asyncio
async def test_wallet_transactions_append_only_blocks_update_and_delete() -> None:
    user_id = await _create_user("wallet-append-only", welcome_bonus=100)

    async with SessionLocal.begin() as session:
        transaction_id = await session.scalar(
            select(WalletTransaction.id).where(WalletTransaction.user_id == user_id)
        )
    assert transaction_id is not None

    with pytest.raises(DBAPIError) as update_exc:
        async with SessionLocal.begin() as session:
            await session.execute(
                text("UPDATE wallet_transactions SET description = 'edited' WHERE id = :transaction_id"),
                {"transaction_id": transaction_id},
            )
    assert "append-only" in str(update_exc.value)

    with pytest.raises(DBAPIError) as delete_exc:
        async with SessionLocal.begin() as session:
            await session.execute(
                text("DELETE FROM wallet_transactions WHERE id = :transaction_id"),
                {"transaction_id": transaction_id},
            )
    assert "append-only" in str(delete_exc.value)


@pytest.mark.asyncio
async def test_adjustment_key_matching_internal_key_is_still_applied() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    user_id = await _create_user("wallet-adjust-namespace", welcome_bonus=100)

    async with SessionLocal.begin() as session:
        result = await WalletService.adjust(
            session,
            user_id=user_id,
            amount=300,
            description="Goodwill credit",
            idempotency_key=f"welcome_bonus:{user_id}",
            now_utc=now_utc,
        )

    assert result.idempotent_replay is False
    assert result.delta == 300
    assert (result.balance.primary, result.balance.bonus) == (300, 100)


@pytest.mark.asyncio
async def test_same_adjustment_key_for_two_users_credits_both() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    first_user_id = await _create_user("wallet-adjust-shared-a")
    second_user_id = await _create_user("wallet-adjust-shared-b")

    results = []
    for user_id in (first_user_id, second_user_id):
        async with SessionLocal.begin() as session:
            results.append(
                await WalletService.adjust(
                    session,
                    user_id=user_id,
                    amount=250,
                    description="Campaign credit",
                    idempotency_key="campaign-2026-03",
                    now_utc=now_utc,
                )
            )

    assert [item.idempotent_replay for item in results] == [False, False]
    assert [item.balance.primary for item in results] == [250, 250]


@pytest.mark.asyncio
async def test_key_owned_by_another_wallet_is_rejected_without_changes() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    owner_id = await _create_user("wallet-key-owner", welcome_bonus=100)
    other_id = await _create_user("wallet-key-other")
    await _fund_primary(other_id, 500, seed="wallet-key-other")

    with pytest.raises(IdempotencyConflictError):
        async with SessionLocal.begin() as session:
            await WalletService.debit(
                session,
                user_id=other_id,
                amount=100,
                kind=KIND_PURCHASE,
                description="Borrowed key",
                idempotency_key=f"welcome_bonus:{owner_id}",
                now_utc=now_utc,
            )

    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=other_id)
    assert balance.primary == 500


@pytest.mark.asyncio
async def test_key_reused_for_different_amount_is_rejected() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    user_id = await _create_user("wallet-key-amount")
    await _fund_primary(user_id, 1_000, seed="wallet-key-amount")

    async with SessionLocal.begin() as session:
        await WalletService.debit(
            session,
            user_id=user_id,
            amount=200,
            kind=KIND_PURCHASE,
            description="First spend",
            idempotency_key="wallet-key-amount:1",
            now_utc=now_utc,
        )

    with pytest.raises(IdempotencyConflictError):
        async with SessionLocal.begin() as session:
            await WalletService.debit(
                session,
                user_id=user_id,
                amount=300,
                kind=KIND_PURCHASE,
                description="Second spend",
                idempotency_key="wallet-key-amount:1",
                now_utc=now_utc,
            )

    async with SessionLocal.begin() as session:
        balance = await WalletService.get_balance(session, user_id=user_id)
    assert balance.primary == 800


@pytest.mark.asyncio
async def test_bonus_pool_adjustment_is_recorded_as_bonus_grant() -> None:
    now_utc = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    user_id = await _create_user("wallet-bonus-grant")

    async with SessionLocal.begin() as session:
        result = await WalletService.adjust(
            session,
            user_id=user_id,
            amount=150,
            description="Loyalty bonus",
            to_bonus=True,
            now_utc=now_utc,
        )

    assert result.kind == KIND_BONUS
    assert (result.bonus_delta, result.primary_delta) == (150, 0)
    assert result.balance.bonus == 150
