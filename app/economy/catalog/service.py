from __future__ import annotations

from collections import defaultdict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.content_repo import ContentRepo
from app.economy.catalog.errors import ContentNotFoundError
from app.economy.catalog.types import ContentInfo, EpisodeInfo, MovieInfo, SeasonInfo, SeriesInfo


class CatalogService:
    @staticmethod
    async def get_content(session: AsyncSession, *, content_id: UUID) -> ContentInfo:
        content = await ContentRepo.get_content(session, content_id)
        if content is None:
            raise ContentNotFoundError(f"content {content_id} not found")

        if content.content_type == "MOVIE":
            return MovieInfo(
                content_id=content.id,
                title=content.title,
                price=content.price,
                currency=content.currency,
            )

        seasons = await ContentRepo.list_seasons(session, content_id=content_id)
        episodes = await ContentRepo.list_episodes(session, content_id=content_id)

        episodes_by_season: dict[UUID, list[EpisodeInfo]] = defaultdict(list)
        for episode in episodes:
            episodes_by_season[episode.season_id].append(
                EpisodeInfo(
                    episode_id=episode.id,
                    season_id=episode.season_id,
                    episode_number=episode.episode_number,
                    price=episode.price,
                    is_free=episode.is_free,
                    title=episode.title,
                )
            )

        return SeriesInfo(
            content_id=content.id,
            title=content.title,
            discount_percent=content.discount_percent,
            currency=content.currency,
            seasons=tuple(
                SeasonInfo(
                    season_id=season.id,
                    season_number=season.season_number,
                    episodes=tuple(
                        sorted(
                            episodes_by_season.get(season.id, []),
                            key=lambda item: item.episode_number,
                        )
                    ),
                )
                for season in seasons
            ),
        )
