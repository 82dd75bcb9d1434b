from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.purchases import PurchaseRecord
from app.db.repo.purchase_records_repo import PurchaseRecordsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.access.rules import (
    LOGIN_REQUIRED_MESSAGE,
    is_free_episode,
    resolve_episode_access,
    resolve_movie_access,
    resolve_series_access,
    summarize_series_access,
)
from app.economy.access.types import AccessDecision, AccessReason, SeriesAccessSummary
from app.economy.catalog.errors import ContentNotFoundError
from app.economy.catalog.service import CatalogService
from app.economy.catalog.types import MovieInfo, SeriesInfo
from app.economy.errors import UserNotFoundError

logger = structlog.get_logger(__name__)

_LOGIN_REQUIRED = AccessDecision(
    allowed=False,
    reason=AccessReason.LOGIN_REQUIRED,
    message=LOGIN_REQUIRED_MESSAGE,
)


class AccessService:
    @staticmethod
    async def _load_owner(
        session: AsyncSession,
        *,
        user_id: int,
        content_id: UUID,
    ) -> tuple[bool, list[PurchaseRecord]]:
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise UserNotFoundError(f"user {user_id} not found")
        if user.is_admin:
            return True, []
        records = await PurchaseRecordsRepo.list_completed_for_content(
            session,
            user_id=user_id,
            content_id=content_id,
        )
        return False, records

    @staticmethod
    async def check_access(
        session: AsyncSession,
        *,
        user_id: int | None,
        content_id: UUID,
        episode_id: UUID | None = None,
    ) -> AccessDecision:
        content = await CatalogService.get_content(session, content_id=content_id)

        if isinstance(content, MovieInfo):
            if episode_id is not None:
                raise ContentNotFoundError(f"{content_id} is a movie and has no episodes")
            if user_id is None:
                decision = resolve_movie_access(content, is_admin=False, records=[])
                return decision if decision.allowed else _LOGIN_REQUIRED
            is_admin, records = await AccessService._load_owner(
                session,
                user_id=user_id,
                content_id=content_id,
            )
            decision = resolve_movie_access(content, is_admin=is_admin, records=records)
        elif episode_id is not None:
            episode = content.find_episode(episode_id)
            if episode is None:
                raise ContentNotFoundError(f"episode {episode_id} not found in {content_id}")
            if is_free_episode(episode):
                return AccessDecision(allowed=True, reason=AccessReason.FREE)
            if user_id is None:
                return _LOGIN_REQUIRED
            is_admin, records = await AccessService._load_owner(
                session,
                user_id=user_id,
                content_id=content_id,
            )
            decision = resolve_episode_access(content, episode, is_admin=is_admin, records=records)
        else:
            if user_id is None:
                decision = resolve_series_access(content, is_admin=False, records=[])
                return decision if decision.allowed else _LOGIN_REQUIRED
            is_admin, records = await AccessService._load_owner(
                session,
                user_id=user_id,
                content_id=content_id,
            )
            decision = resolve_series_access(content, is_admin=is_admin, records=records)

        if not decision.allowed:
            logger.info(
                "content_access_denied",
                user_id=user_id,
                content_id=str(content_id),
                episode_id=str(episode_id) if episode_id is not None else None,
                reason=decision.reason.value,
            )
        return decision

    @staticmethod
    async def series_access_summary(
        session: AsyncSession,
        *,
        user_id: int | None,
        content_id: UUID,
    ) -> SeriesAccessSummary:
        content = await CatalogService.get_content(session, content_id=content_id)
        if not isinstance(content, SeriesInfo):
            raise ContentNotFoundError(f"{content_id} is not a series")

        is_admin, records = False, []
        if user_id is not None:
            is_admin, records = await AccessService._load_owner(
                session,
                user_id=user_id,
                content_id=content_id,
            )
        return summarize_series_access(content, is_admin=is_admin, records=records)
