from __future__ import annotations

from typing import Sequence

from app.economy.access.types import (
    AccessDecision,
    AccessReason,
    EpisodeAccess,
    SeriesAccessSummary,
    SeriesAccessType,
)
from app.economy.catalog.types import EpisodeInfo, MovieInfo, SeriesInfo, TargetKind
from app.economy.purchases.service.coverage import OwnedRecord

MOVIE_NOT_PURCHASED_MESSAGE = "You need to purchase this movie to watch"
EPISODE_NOT_PURCHASED_MESSAGE = "You need to purchase this episode or the full series to watch"
SERIES_NOT_PURCHASED_MESSAGE = "You need to purchase the full series to watch"
LOGIN_REQUIRED_MESSAGE = "Please login to watch this content"

_ALLOWED_ADMIN = AccessDecision(allowed=True, reason=AccessReason.ADMIN)
_ALLOWED_FREE = AccessDecision(allowed=True, reason=AccessReason.FREE)


def _of_kind(records: Sequence[OwnedRecord], kind: TargetKind) -> list[OwnedRecord]:
    return [record for record in records if record.target_kind == kind.value]


def _in_snapshot(record: OwnedRecord, episode: EpisodeInfo) -> bool:
    return episode.episode_id in (record.snapshot_episode_ids or ())


def _series_added_after_message(series: SeriesInfo) -> str:
    return (
        f"This episode was added to {series.title} after you purchased the full series. "
        "Please purchase this episode separately or upgrade your purchase."
    )


def _season_added_after_message(season_number: int) -> str:
    return (
        f"This episode was added to Season {season_number} after you purchased it. "
        "Please purchase this episode separately."
    )


def resolve_movie_access(
    movie: MovieInfo,
    *,
    is_admin: bool,
    records: Sequence[OwnedRecord],
) -> AccessDecision:
    if is_admin:
        return _ALLOWED_ADMIN
    if movie.price <= 0:
        return _ALLOWED_FREE
    if _of_kind(records, TargetKind.MOVIE):
        return AccessDecision(allowed=True, reason=AccessReason.MOVIE_PURCHASE)
    return AccessDecision(
        allowed=False,
        reason=AccessReason.NOT_PURCHASED,
        message=MOVIE_NOT_PURCHASED_MESSAGE,
    )


def is_free_episode(episode: EpisodeInfo) -> bool:
    return episode.is_free or episode.price <= 0


def resolve_episode_access(
    series: SeriesInfo,
    episode: EpisodeInfo,
    *,
    is_admin: bool,
    records: Sequence[OwnedRecord],
) -> AccessDecision:
    if is_admin:
        return _ALLOWED_ADMIN
    if is_free_episode(episode):
        return _ALLOWED_FREE

    series_records = _of_kind(records, TargetKind.SERIES)
    if any(_in_snapshot(record, episode) for record in series_records):
        return AccessDecision(allowed=True, reason=AccessReason.SERIES_PURCHASE)

    season_records = [
        record
        for record in _of_kind(records, TargetKind.SEASON)
        if record.season_id == episode.season_id
    ]
    if any(_in_snapshot(record, episode) for record in season_records):
        return AccessDecision(allowed=True, reason=AccessReason.SEASON_PURCHASE)

    if any(record.episode_id == episode.episode_id for record in _of_kind(records, TargetKind.EPISODE)):
        return AccessDecision(allowed=True, reason=AccessReason.EPISODE_PURCHASE)

    if series_records:
        return AccessDecision(
            allowed=False,
            reason=AccessReason.ADDED_AFTER_PURCHASE,
            message=_series_added_after_message(series),
        )
    if season_records:
        season = series.find_season(episode.season_id)
        return AccessDecision(
            allowed=False,
            reason=AccessReason.ADDED_AFTER_PURCHASE,
            message=_season_added_after_message(season.season_number if season is not None else 0),
        )
    return AccessDecision(
        allowed=False,
        reason=AccessReason.NOT_PURCHASED,
        message=EPISODE_NOT_PURCHASED_MESSAGE,
    )


def resolve_series_access(
    series: SeriesInfo,
    *,
    is_admin: bool,
    records: Sequence[OwnedRecord],
) -> AccessDecision:
    if is_admin:
        return _ALLOWED_ADMIN
    if all(is_free_episode(episode) for episode in series.episodes):
        return _ALLOWED_FREE
    if _of_kind(records, TargetKind.SERIES):
        return AccessDecision(allowed=True, reason=AccessReason.SERIES_PURCHASE)
    return AccessDecision(
        allowed=False,
        reason=AccessReason.NOT_PURCHASED,
        message=SERIES_NOT_PURCHASED_MESSAGE,
    )


def summarize_series_access(
    series: SeriesInfo,
    *,
    is_admin: bool,
    records: Sequence[OwnedRecord],
) -> SeriesAccessSummary:
    episodes = [
        EpisodeAccess(
            episode_id=episode.episode_id,
            season_id=episode.season_id,
            episode_number=episode.episode_number,
            is_free=episode.is_free,
            decision=resolve_episode_access(series, episode, is_admin=is_admin, records=records),
        )
        for episode in series.episodes
    ]
    total = len(episodes)
    unlocked = sum(1 for item in episodes if item.decision.allowed)
    free = sum(1 for item in episodes if item.is_free)
    purchased = sum(
        1
        for item in episodes
        if item.decision.allowed and item.decision.reason is not AccessReason.FREE
    )

    if total > 0 and unlocked == total and purchased > 0:
        access_type = SeriesAccessType.FULL
    elif purchased > 0:
        access_type = SeriesAccessType.PARTIAL
    elif unlocked > 0:
        access_type = SeriesAccessType.FREE
    else:
        access_type = SeriesAccessType.NONE

    return SeriesAccessSummary(
        content_id=series.content_id,
        access_type=access_type,
        total_episodes=total,
        unlocked_episodes=unlocked,
        free_episodes=free,
        total_seasons=len(series.seasons),
        episodes=episodes,
    )
