from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.purchases import PurchaseRecord
from app.db.repo.purchase_records_repo import PurchaseRecordsRepo
from app.economy.catalog.pricing import price_of, require_purchasable_price
from app.economy.catalog.service import CatalogService
from app.economy.catalog.types import ContentInfo, PurchaseTarget, SeriesInfo, TargetKind
from app.economy.purchases.errors import AlreadyOwnedError, FreeContentError

from .builder import _build_record
from .coverage import find_covering_record, snapshot_for_target

logger = structlog.get_logger(__name__)


async def _price_target(
    session: AsyncSession,
    *,
    target: PurchaseTarget,
) -> tuple[ContentInfo, int]:
    content = await CatalogService.get_content(session, content_id=target.content_id)
    price = price_of(content, target)

    if target.kind is TargetKind.EPISODE and isinstance(content, SeriesInfo):
        episode = content.find_episode(target.episode_id)
        if episode is not None and episode.is_free:
            raise FreeContentError(f"episode {target.episode_id} is free")

    return content, require_purchasable_price(price, target=target)


async def _ensure_not_owned(
    session: AsyncSession,
    *,
    user_id: int,
    target: PurchaseTarget,
    content: ContentInfo,
) -> None:
    records = await PurchaseRecordsRepo.list_completed_for_content(
        session,
        user_id=user_id,
        content_id=target.content_id,
    )
    covering = find_covering_record(
        records,
        target=target,
        series=content if isinstance(content, SeriesInfo) else None,
    )
    if covering is not None:
        raise AlreadyOwnedError(
            f"{target.kind.value} already covered by purchase {getattr(covering, 'id', None)}"
        )


async def grant_entitlement(
    session: AsyncSession,
    *,
    user_id: int,
    target: PurchaseTarget,
    content: ContentInfo,
    price: int,
    currency: str,
    payment_method: str,
    now_utc: datetime,
    pending_payment_id: UUID | None = None,
) -> PurchaseRecord:
    """Write the purchase record; callers hold the user's wallet lock and have already
    collected payment (wallet debit or settled gateway payment)."""
    snapshot = snapshot_for_target(content, target=target) if isinstance(content, SeriesInfo) else None
    record = _build_record(
        target,
        user_id=user_id,
        price_paid=price,
        currency=currency,
        payment_method=payment_method,
        snapshot_episode_ids=snapshot,
        pending_payment_id=pending_payment_id,
        now_utc=now_utc,
    )
    try:
        async with session.begin_nested():
            created = await PurchaseRecordsRepo.create(session, record=record)
    except IntegrityError as exc:
        logger.warning(
            "purchase_grant_conflict",
            user_id=user_id,
            target_kind=target.kind.value,
            content_id=str(target.content_id),
        )
        raise AlreadyOwnedError(f"{target.kind.value} already owned") from exc

    logger.info(
        "purchase_granted",
        user_id=user_id,
        record_id=str(created.id),
        target_kind=created.target_kind,
        content_id=str(created.content_id),
        price_paid=price,
        payment_method=payment_method,
        snapshot_size=len(snapshot) if snapshot is not None else None,
    )
    return created
