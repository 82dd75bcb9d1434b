from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class TargetKind(str, Enum):
    MOVIE = "MOVIE"
    SERIES = "SERIES"
    SEASON = "SEASON"
    EPISODE = "EPISODE"


@dataclass(slots=True, frozen=True)
class PurchaseTarget:
    kind: TargetKind
    content_id: UUID
    season_id: UUID | None = None
    episode_id: UUID | None = None


@dataclass(slots=True, frozen=True)
class EpisodeInfo:
    episode_id: UUID
    season_id: UUID
    episode_number: int
    price: int
    is_free: bool
    title: str | None = None


@dataclass(slots=True, frozen=True)
class SeasonInfo:
    season_id: UUID
    season_number: int
    episodes: tuple[EpisodeInfo, ...] = ()

    @property
    def episode_ids(self) -> list[UUID]:
        return [episode.episode_id for episode in self.episodes]


@dataclass(slots=True, frozen=True)
class MovieInfo:
    content_id: UUID
    title: str
    price: int
    currency: str


@dataclass(slots=True, frozen=True)
class SeriesInfo:
    content_id: UUID
    title: str
    discount_percent: int
    currency: str
    seasons: tuple[SeasonInfo, ...] = field(default_factory=tuple)

    @property
    def episodes(self) -> list[EpisodeInfo]:
        return [episode for season in self.seasons for episode in season.episodes]

    @property
    def episode_ids(self) -> list[UUID]:
        return [episode.episode_id for episode in self.episodes]

    def find_season(self, season_id: UUID) -> SeasonInfo | None:
        for season in self.seasons:
            if season.season_id == season_id:
                return season
        return None

    def find_episode(self, episode_id: UUID) -> EpisodeInfo | None:
        for episode in self.episodes:
            if episode.episode_id == episode_id:
                return episode
        return None


ContentInfo = MovieInfo | SeriesInfo
