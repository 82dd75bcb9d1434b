from __future__ import annotations

from typing import Iterable, Protocol, Sequence
from uuid import UUID

from app.economy.catalog.types import PurchaseTarget, SeriesInfo, TargetKind


class OwnedRecord(Protocol):
    target_kind: str
    season_id: UUID | None
    episode_id: UUID | None
    snapshot_episode_ids: Sequence[UUID] | None


def _snapshot(record: OwnedRecord) -> set[UUID]:
    return set(record.snapshot_episode_ids or ())


def _records_of_kind(records: Iterable[OwnedRecord], kind: TargetKind) -> list[OwnedRecord]:
    return [record for record in records if record.target_kind == kind.value]


def find_covering_record(
    records: Iterable[OwnedRecord],
    *,
    target: PurchaseTarget,
    series: SeriesInfo | None,
) -> OwnedRecord | None:
    """Return the completed record that already covers ``target``, if any.

    ``records`` must be the user's completed records for ``target.content_id``.
    Bundle records only cover the episodes captured in their snapshot, so an episode
    released after a bundle purchase is not covered.
    """
    records = list(records)

    if target.kind in (TargetKind.MOVIE, TargetKind.SERIES):
        matches = _records_of_kind(records, target.kind)
        return matches[0] if matches else None

    if target.kind is TargetKind.SEASON:
        for record in _records_of_kind(records, TargetKind.SEASON):
            if record.season_id == target.season_id:
                return record
        season = series.find_season(target.season_id) if series is not None else None
        if season is None or not season.episodes:
            return None
        current_ids = set(season.episode_ids)
        for record in _records_of_kind(records, TargetKind.SERIES):
            if current_ids <= _snapshot(record):
                return record
        return None

    for record in _records_of_kind(records, TargetKind.EPISODE):
        if record.episode_id == target.episode_id:
            return record
    for record in records:
        if record.target_kind in (TargetKind.SERIES.value, TargetKind.SEASON.value):
            if target.episode_id in _snapshot(record):
                return record
    return None


def snapshot_for_target(series: SeriesInfo, *, target: PurchaseTarget) -> list[UUID] | None:
    if target.kind is TargetKind.SERIES:
        return series.episode_ids
    if target.kind is TargetKind.SEASON:
        season = series.find_season(target.season_id)
        return season.episode_ids if season is not None else []
    return None
