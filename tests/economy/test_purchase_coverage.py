from __future__ import annotations

from app.economy.catalog.types import PurchaseTarget, TargetKind
from app.economy.purchases.service.coverage import find_covering_record, snapshot_for_target
from tests.economy.catalog_fixtures import FakeRecord, add_episode, make_season, make_series


def _series_record(series) -> FakeRecord:
    return FakeRecord(target_kind="SERIES", snapshot_episode_ids=list(series.episode_ids))


def test_movie_and_series_targets_match_same_kind_record() -> None:
    series = make_series(make_season(1, prices=[500]))
    record = _series_record(series)

    target = PurchaseTarget(kind=TargetKind.SERIES, content_id=series.content_id)
    assert find_covering_record([record], target=target, series=series) is record
    assert find_covering_record([], target=target, series=series) is None


def test_season_is_covered_by_series_snapshot_superset() -> None:
    season = make_season(1, prices=[500, 500])
    series = make_series(season)
    record = _series_record(series)

    target = PurchaseTarget(kind=TargetKind.SEASON, content_id=series.content_id, season_id=season.season_id)
    assert find_covering_record([record], target=target, series=series) is record


def test_season_with_new_episode_is_not_covered_by_older_series_snapshot() -> None:
    series = make_series(make_season(1, prices=[500, 500]))
    record = _series_record(series)
    grown, _ = add_episode(series, season_index=0)

    target = PurchaseTarget(
        kind=TargetKind.SEASON,
        content_id=grown.content_id,
        season_id=grown.seasons[0].season_id,
    )
    assert find_covering_record([record], target=target, series=grown) is None


def test_episode_is_covered_by_bundle_snapshot_only() -> None:
    series = make_series(make_season(1, prices=[500, 500]))
    season_record = FakeRecord(
        target_kind="SEASON",
        season_id=series.seasons[0].season_id,
        snapshot_episode_ids=list(series.seasons[0].episode_ids),
    )
    grown, new_episode = add_episode(series, season_index=0)
    old_episode = series.seasons[0].episodes[0]

    old_target = PurchaseTarget(
        kind=TargetKind.EPISODE,
        content_id=grown.content_id,
        episode_id=old_episode.episode_id,
    )
    new_target = PurchaseTarget(
        kind=TargetKind.EPISODE,
        content_id=grown.content_id,
        episode_id=new_episode.episode_id,
    )
    assert find_covering_record([season_record], target=old_target, series=grown) is season_record
    assert find_covering_record([season_record], target=new_target, series=grown) is None


def test_episode_is_covered_by_episode_record() -> None:
    series = make_series(make_season(1, prices=[500]))
    episode = series.episodes[0]
    record = FakeRecord(target_kind="EPISODE", episode_id=episode.episode_id)

    target = PurchaseTarget(kind=TargetKind.EPISODE, content_id=series.content_id, episode_id=episode.episode_id)
    assert find_covering_record([record], target=target, series=series) is record


def test_snapshot_for_target_captures_current_episode_ids() -> None:
    season_one = make_season(1, prices=[500, 0], free_numbers={2})
    season_two = make_season(2, prices=[700])
    series = make_series(season_one, season_two)

    assert snapshot_for_target(
        series,
        target=PurchaseTarget(kind=TargetKind.SERIES, content_id=series.content_id),
    ) == series.episode_ids
    assert snapshot_for_target(
        series,
        target=PurchaseTarget(kind=TargetKind.SEASON, content_id=series.content_id, season_id=season_two.season_id),
    ) == season_two.episode_ids
    assert snapshot_for_target(
        series,
        target=PurchaseTarget(
            kind=TargetKind.EPISODE,
            content_id=series.content_id,
            episode_id=season_two.episodes[0].episode_id,
        ),
    ) is None
