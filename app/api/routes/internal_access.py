from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Request

from app.db.session import SessionLocal
from app.economy.access.service import AccessService
from app.economy.errors import EconomyError

from .internal_helpers import (
    _assert_internal_access,
    _decision_as_response,
    _raise_http_error,
    _summary_as_response,
)
from .internal_models import (
    AccessCheckRequest,
    AccessDecisionResponse,
    SeriesAccessSummaryResponse,
)

router = APIRouter(tags=["internal", "access"])


@router.post("/internal/access/check", response_model=AccessDecisionResponse)
async def check_access(payload: AccessCheckRequest, request: Request) -> AccessDecisionResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            decision = await AccessService.check_access(
                session,
                user_id=payload.user_id,
                content_id=payload.content_id,
                episode_id=payload.episode_id,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return _decision_as_response(decision)


@router.get(
    "/internal/access/series/{content_id}",
    response_model=SeriesAccessSummaryResponse,
)
async def get_series_access_summary(
    content_id: UUID,
    request: Request,
    user_id: int | None = Query(default=None, gt=0),
) -> SeriesAccessSummaryResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            summary = await AccessService.series_access_summary(
                session,
                user_id=user_id,
                content_id=content_id,
            )
    except EconomyError as exc:
        _raise_http_error(exc)

    return _summary_as_response(summary)
