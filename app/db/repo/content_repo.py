from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.content import ContentItem, Episode, Season


class ContentRepo:
    @staticmethod
    async def get_content(session: AsyncSession, content_id: UUID) -> ContentItem | None:
        return await session.get(ContentItem, content_id)

    @staticmethod
    async def list_seasons(session: AsyncSession, *, content_id: UUID) -> list[Season]:
        stmt = (
            select(Season)
            .where(Season.content_id == content_id)
            .order_by(Season.season_number.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_episodes(session: AsyncSession, *, content_id: UUID) -> list[Episode]:
        stmt = (
            select(Episode)
            .where(Episode.content_id == content_id)
            .order_by(Episode.season_id.asc(), Episode.episode_number.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_episode(session: AsyncSession, episode_id: UUID) -> Episode | None:
        return await session.get(Episode, episode_id)
