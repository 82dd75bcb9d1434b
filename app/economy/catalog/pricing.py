from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from app.economy.catalog.errors import ContentNotFoundError, InvalidPricingError
from app.economy.catalog.types import (
    ContentInfo,
    EpisodeInfo,
    MovieInfo,
    PurchaseTarget,
    SeriesInfo,
    TargetKind,
)

_HUNDRED = Decimal(100)
_MINOR_UNIT = Decimal(1)


def apply_discount(amount: int, *, discount_percent: int) -> int:
    """Discounted amount rounded half-up to the nearest minor unit."""
    if discount_percent < 0 or discount_percent > 100:
        raise InvalidPricingError(f"discount_percent out of range: {discount_percent}")
    if amount < 0:
        raise InvalidPricingError(f"negative amount: {amount}")

    discounted = Decimal(amount) * (_HUNDRED - Decimal(discount_percent)) / _HUNDRED
    return int(discounted.quantize(_MINOR_UNIT, rounding=ROUND_HALF_UP))


def _paid_episodes_sum(episodes: Iterable[EpisodeInfo]) -> int:
    total = 0
    for episode in episodes:
        if episode.is_free:
            continue
        if episode.price <= 0:
            raise InvalidPricingError(f"episode {episode.episode_id} is not free but has no price")
        total += episode.price
    return total


def price_movie(movie: MovieInfo) -> int:
    return movie.price


def price_episode(episode: EpisodeInfo) -> int:
    if episode.is_free:
        return 0
    return episode.price


def price_season(series: SeriesInfo, *, season_id: UUID) -> int:
    season = series.find_season(season_id)
    if season is None:
        raise ContentNotFoundError(f"season {season_id} not found in {series.content_id}")
    return apply_discount(
        _paid_episodes_sum(season.episodes),
        discount_percent=series.discount_percent,
    )


def price_series(series: SeriesInfo) -> int:
    return apply_discount(
        _paid_episodes_sum(series.episodes),
        discount_percent=series.discount_percent,
    )


def price_of(content: ContentInfo, target: PurchaseTarget) -> int:
    if isinstance(content, MovieInfo):
        if target.kind is not TargetKind.MOVIE:
            raise ContentNotFoundError(f"{content.content_id} is a movie, not a {target.kind.value}")
        return price_movie(content)

    if target.kind is TargetKind.MOVIE:
        raise ContentNotFoundError(f"{content.content_id} is a series, not a movie")
    if target.kind is TargetKind.SERIES:
        return price_series(content)
    if target.kind is TargetKind.SEASON:
        if target.season_id is None:
            raise ContentNotFoundError("season target requires season_id")
        return price_season(content, season_id=target.season_id)

    if target.episode_id is None:
        raise ContentNotFoundError("episode target requires episode_id")
    episode = content.find_episode(target.episode_id)
    if episode is None:
        raise ContentNotFoundError(f"episode {target.episode_id} not found in {content.content_id}")
    return price_episode(episode)


def require_purchasable_price(price: int, *, target: PurchaseTarget) -> int:
    if price <= 0:
        raise InvalidPricingError(f"{target.kind.value} {target.content_id} has no purchasable price")
    return price
