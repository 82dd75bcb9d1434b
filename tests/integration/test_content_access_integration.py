from __future__ import annotations

from datetime import datetime

import pytest

from app.db.session import SessionLocal
from app.economy.access.service import AccessService
from app.economy.access.types import AccessReason, SeriesAccessType
from app.economy.purchases.errors import AlreadyOwnedError
from app.economy.catalog.types import PurchaseTarget, TargetKind
from app.economy.purchases.service import PurchaseService
from tests.integration.ledger_fixtures import (
    UTC,
    _add_episode,
    _create_movie,
    _create_series,
    _create_user,
    _fund_primary,
)


@pytest.mark.asyncio
async def test_episode_added_after_season_purchase_is_not_unlocked() -> None:
    now_utc = datetime(2026, 3, 4, 20, 0, tzinfo=UTC)
    user_id = await _create_user("access-added-later")
    await _fund_primary(user_id, 5_000, seed="access-added-later")
    series_id, season_ids, episode_ids = await _create_series(seasons=[[400, 400]])

    async with SessionLocal.begin() as session:
        await PurchaseService.purchase_with_wallet(
            session,
            user_id=user_id,
            target=PurchaseTarget(kind=TargetKind.SEASON, content_id=series_id, season_id=season_ids[0]),
            now_utc=now_utc,
        )

    late_episode_id = await _add_episode(
        content_id=series_id,
        season_id=season_ids[0],
        episode_number=3,
        price=400,
    )

    async with SessionLocal.begin() as session:
        owned = await AccessService.check_access(
            session,
            user_id=user_id,
            content_id=series_id,
            episode_id=episode_ids[0][0],
        )
        late = await AccessService.check_access(
            session,
            user_id=user_id,
            content_id=series_id,
            episode_id=late_episode_id,
        )
        summary = await AccessService.series_access_summary(
            session,
            user_id=user_id,
            content_id=series_id,
        )

    assert owned.allowed is True
    assert owned.reason is AccessReason.SEASON_PURCHASE
    assert late.allowed is False
    assert late.reason is AccessReason.ADDED_AFTER_PURCHASE
    assert summary.access_type is SeriesAccessType.PARTIAL
    assert (summary.total_episodes, summary.unlocked_episodes) == (3, 2)


@pytest.mark.asyncio
async def test_anonymous_viewer_gets_free_episode_and_login_prompt_elsewhere() -> None:
    series_id, _season_ids, episode_ids = await _create_series(
        seasons=[[0, 250]],
        free_episode_numbers=frozenset({1}),
    )
    movie_id = await _create_movie(price=800)

    async with SessionLocal.begin() as session:
        free = await AccessService.check_access(
            session,
            user_id=None,
            content_id=series_id,
            episode_id=episode_ids[0][0],
        )
        paid = await AccessService.check_access(
            session,
            user_id=None,
            content_id=series_id,
            episode_id=episode_ids[0][1],
        )
        movie = await AccessService.check_access(session, user_id=None, content_id=movie_id)

    assert free.allowed is True
    assert free.reason is AccessReason.FREE
    assert paid.reason is AccessReason.LOGIN_REQUIRED
    assert movie.reason is AccessReason.LOGIN_REQUIRED


@pytest.mark.asyncio
async def test_admin_sees_everything_without_purchases() -> None:
    admin_id = await _create_user("access-admin", role="ADMIN")
    movie_id = await _create_movie(price=800)
    series_id, _season_ids, _episode_ids = await _create_series(seasons=[[100, 100]])

    async with SessionLocal.begin() as session:
        movie = await AccessService.check_access(session, user_id=admin_id, content_id=movie_id)
        summary = await AccessService.series_access_summary(
            session,
            user_id=admin_id,
            content_id=series_id,
        )

    assert movie.allowed is True
    assert movie.reason is AccessReason.ADMIN
    assert summary.access_type is SeriesAccessType.FULL


@pytest.mark.asyncio
async def test_episode_released_after_series_purchase_can_be_bought_alone() -> None:
    now_utc = datetime(2026, 3, 4, 20, 0, tzinfo=UTC)
    user_id = await _create_user("access-series-late")
    await _fund_primary(user_id, 5_000, seed="access-series-late")
    series_id, season_ids, episode_ids = await _create_series(seasons=[[300, 300, 300]])

    async with SessionLocal.begin() as session:
        bundle = await PurchaseService.purchase_with_wallet(
            session,
            user_id=user_id,
            target=PurchaseTarget(kind=TargetKind.SERIES, content_id=series_id),
            now_utc=now_utc,
        )
    assert len(bundle.snapshot_episode_ids) == 3

    late_episode_id = await _add_episode(
        content_id=series_id,
        season_id=season_ids[0],
        episode_number=4,
        price=350,
    )
    late_target = PurchaseTarget(
        kind=TargetKind.EPISODE,
        content_id=series_id,
        season_id=season_ids[0],
        episode_id=late_episode_id,
    )

    async with SessionLocal.begin() as session:
        before = await AccessService.check_access(
            session,
            user_id=user_id,
            content_id=series_id,
            episode_id=late_episode_id,
        )
    assert before.allowed is False
    assert before.reason is AccessReason.ADDED_AFTER_PURCHASE

    async with SessionLocal.begin() as session:
        single = await PurchaseService.purchase_with_wallet(
            session,
            user_id=user_id,
            target=late_target,
            now_utc=now_utc,
        )
    assert single.price_paid == 350

    async with SessionLocal.begin() as session:
        after = await AccessService.check_access(
            session,
            user_id=user_id,
            content_id=series_id,
            episode_id=late_episode_id,
        )
        original = await AccessService.check_access(
            session,
            user_id=user_id,
            content_id=series_id,
            episode_id=episode_ids[0][0],
        )
        summary = await AccessService.series_access_summary(
            session,
            user_id=user_id,
            content_id=series_id,
        )
    assert after.allowed is True
    assert after.reason is AccessReason.EPISODE_PURCHASE
    assert original.reason is AccessReason.SERIES_PURCHASE
    assert (summary.total_episodes, summary.unlocked_episodes) == (4, 4)

    with pytest.raises(AlreadyOwnedError):
        async with SessionLocal.begin() as session:
            await PurchaseService.purchase_with_wallet(
                session,
                user_id=user_id,
                target=late_target,
                now_utc=now_utc,
            )
