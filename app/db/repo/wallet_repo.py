from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.wallet_accounts import WalletAccount
from app.db.models.wallet_transactions import WalletTransaction


class WalletRepo:
    @staticmethod
    async def get_account(session: AsyncSession, user_id: int) -> WalletAccount | None:
        return await session.get(WalletAccount, user_id)

    @staticmethod
    async def get_account_for_update(session: AsyncSession, user_id: int) -> WalletAccount | None:
        stmt = select(WalletAccount).where(WalletAccount.user_id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def ensure_account(
        session: AsyncSession,
        *,
        user_id: int,
        currency: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            postgresql_insert(WalletAccount)
            .values(
                user_id=user_id,
                primary_balance=0,
                bonus_balance=0,
                currency=currency,
                version=0,
                created_at=now_utc,
                updated_at=now_utc,
            )
            .on_conflict_do_nothing(index_elements=[WalletAccount.user_id])
            .returning(WalletAccount.user_id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def get_transaction_by_idempotency_key(
        session: AsyncSession,
        idempotency_key: str,
    ) -> WalletTransaction | None:
        stmt = select(WalletTransaction).where(WalletTransaction.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_transaction(
        session: AsyncSession,
        *,
        transaction: WalletTransaction,
    ) -> WalletTransaction:
        session.add(transaction)
        await session.flush()
        return transaction

    @staticmethod
    async def list_transactions(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int,
        offset: int,
    ) -> list[WalletTransaction]:
        stmt = (
            select(WalletTransaction)
            .where(WalletTransaction.user_id == user_id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .limit(max(1, min(200, int(limit))))
            .offset(max(0, int(offset)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_balance_drift(session: AsyncSession) -> list[tuple[int, int, int, int, int]]:
        """Return ``(user_id, primary, bonus, primary_sum, bonus_sum)`` for accounts whose
        pools disagree with the sum of their transaction deltas."""
        sums = (
            select(
                WalletTransaction.user_id.label("user_id"),
                func.coalesce(func.sum(WalletTransaction.primary_delta), 0).label("primary_sum"),
                func.coalesce(func.sum(WalletTransaction.bonus_delta), 0).label("bonus_sum"),
            )
            .group_by(WalletTransaction.user_id)
            .subquery()
        )
        primary_sum = func.coalesce(sums.c.primary_sum, 0)
        bonus_sum = func.coalesce(sums.c.bonus_sum, 0)
        stmt = (
            select(
                WalletAccount.user_id,
                WalletAccount.primary_balance,
                WalletAccount.bonus_balance,
                primary_sum,
                bonus_sum,
            )
            .outerjoin(sums, sums.c.user_id == WalletAccount.user_id)
            .where(
                (WalletAccount.primary_balance != primary_sum)
                | (WalletAccount.bonus_balance != bonus_sum)
            )
            .order_by(WalletAccount.user_id.asc())
        )
        result = await session.execute(stmt)
        return [
            (int(user_id), int(primary), int(bonus), int(p_sum), int(b_sum))
            for user_id, primary, bonus, p_sum, b_sum in result.all()
        ]
