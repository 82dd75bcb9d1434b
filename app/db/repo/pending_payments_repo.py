from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.pending_payments import PendingPayment


class PendingPaymentsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, payment_id: UUID) -> PendingPayment | None:
        return await session.get(PendingPayment, payment_id)

    @staticmethod
    async def get_by_external_ref(session: AsyncSession, external_ref: str) -> PendingPayment | None:
        stmt = select(PendingPayment).where(PendingPayment.external_ref == external_ref)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_external_ref_for_update(
        session: AsyncSession,
        external_ref: str,
    ) -> PendingPayment | None:
        stmt = select(PendingPayment).where(PendingPayment.external_ref == external_ref).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, payment: PendingPayment) -> PendingPayment:
        session.add(payment)
        await session.flush()
        return payment

    @staticmethod
    async def list_stale_pending(
        session: AsyncSession,
        *,
        older_than_utc: datetime,
        limit: int = 100,
    ) -> list[PendingPayment]:
        stmt = (
            select(PendingPayment)
            .where(
                PendingPayment.status == "PENDING",
                PendingPayment.provider_transaction_id.is_not(None),
                PendingPayment.created_at <= older_than_utc,
            )
            .order_by(PendingPayment.created_at.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_stuck_pending(session: AsyncSession, *, min_verify_failures: int) -> int:
        stmt = select(func.count(PendingPayment.id)).where(
            PendingPayment.status == "PENDING",
            PendingPayment.verify_failures >= min_verify_failures,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
