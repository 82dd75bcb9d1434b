from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class AccessReason(str, Enum):
    ADMIN = "ADMIN"
    FREE = "FREE"
    MOVIE_PURCHASE = "MOVIE_PURCHASE"
    SERIES_PURCHASE = "SERIES_PURCHASE"
    SEASON_PURCHASE = "SEASON_PURCHASE"
    EPISODE_PURCHASE = "EPISODE_PURCHASE"
    NOT_PURCHASED = "NOT_PURCHASED"
    ADDED_AFTER_PURCHASE = "ADDED_AFTER_PURCHASE"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"


class SeriesAccessType(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"
    FREE = "FREE"
    NONE = "NONE"


@dataclass(slots=True, frozen=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason
    message: str | None = None


@dataclass(slots=True, frozen=True)
class EpisodeAccess:
    episode_id: UUID
    season_id: UUID
    episode_number: int
    is_free: bool
    decision: AccessDecision


@dataclass(slots=True)
class SeriesAccessSummary:
    content_id: UUID
    access_type: SeriesAccessType
    total_episodes: int
    unlocked_episodes: int
    free_episodes: int
    total_seasons: int
    episodes: list[EpisodeAccess] = field(default_factory=list)
