from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.purchases import PurchaseRecord


class PurchaseRecordsRepo:
    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, record_id: UUID) -> PurchaseRecord | None:
        stmt = select(PurchaseRecord).where(PurchaseRecord.id == record_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_completed_for_content(
        session: AsyncSession,
        *,
        user_id: int,
        content_id: UUID,
    ) -> list[PurchaseRecord]:
        stmt = (
            select(PurchaseRecord)
            .where(
                PurchaseRecord.user_id == user_id,
                PurchaseRecord.content_id == content_id,
                PurchaseRecord.status == "COMPLETED",
            )
            .order_by(PurchaseRecord.purchased_at.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_user(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int,
        offset: int,
    ) -> list[PurchaseRecord]:
        stmt = (
            select(PurchaseRecord)
            .where(PurchaseRecord.user_id == user_id)
            .order_by(PurchaseRecord.purchased_at.desc(), PurchaseRecord.id.desc())
            .limit(max(1, min(200, int(limit))))
            .offset(max(0, int(offset)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, record: PurchaseRecord) -> PurchaseRecord:
        session.add(record)
        await session.flush()
        return record

    @staticmethod
    async def mark_refunded(
        session: AsyncSession,
        *,
        record: PurchaseRecord,
        refunded_at: datetime,
    ) -> PurchaseRecord:
        record.status = "REFUNDED"
        record.refunded_at = refunded_at
        await session.flush()
        return record
