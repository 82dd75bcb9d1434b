from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from app.economy.catalog.types import EpisodeInfo, MovieInfo, SeasonInfo, SeriesInfo


@dataclass(slots=True)
class FakeRecord:
    target_kind: str
    season_id: UUID | None = None
    episode_id: UUID | None = None
    snapshot_episode_ids: list[UUID] | None = None


def make_episode(
    *,
    season_id: UUID,
    number: int,
    price: int = 500,
    is_free: bool = False,
) -> EpisodeInfo:
    return EpisodeInfo(
        episode_id=uuid4(),
        season_id=season_id,
        episode_number=number,
        price=price,
        is_free=is_free,
        title=f"Episode {number}",
    )


def make_season(number: int, *, prices: list[int], free_numbers: set[int] | None = None) -> SeasonInfo:
    season_id = uuid4()
    free_numbers = free_numbers or set()
    episodes = tuple(
        make_episode(
            season_id=season_id,
            number=index,
            price=price,
            is_free=index in free_numbers,
        )
        for index, price in enumerate(prices, start=1)
    )
    return SeasonInfo(season_id=season_id, season_number=number, episodes=episodes)


def make_series(*seasons: SeasonInfo, discount_percent: int = 15, title: str = "Kigali Nights") -> SeriesInfo:
    return SeriesInfo(
        content_id=uuid4(),
        title=title,
        discount_percent=discount_percent,
        currency="RWF",
        seasons=tuple(seasons),
    )


def make_movie(*, price: int = 1500, title: str = "Umurage") -> MovieInfo:
    return MovieInfo(content_id=uuid4(), title=title, price=price, currency="RWF")


def add_episode(series: SeriesInfo, *, season_index: int, price: int = 500) -> tuple[SeriesInfo, EpisodeInfo]:
    """Return a copy of ``series`` with one more paid episode appended to a season."""
    season = series.seasons[season_index]
    episode = make_episode(
        season_id=season.season_id,
        number=len(season.episodes) + 1,
        price=price,
    )
    grown = SeasonInfo(
        season_id=season.season_id,
        season_number=season.season_number,
        episodes=season.episodes + (episode,),
    )
    seasons = list(series.seasons)
    seasons[season_index] = grown
    return (
        SeriesInfo(
            content_id=series.content_id,
            title=series.title,
            discount_percent=series.discount_percent,
            currency=series.currency,
            seasons=tuple(seasons),
        ),
        episode,
    )
