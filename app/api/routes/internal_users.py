from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from app.db.session import SessionLocal
from app.services.user_onboarding import UserOnboardingService

from .internal_helpers import _assert_internal_access, _balance_as_response, get_settings
from .internal_models import UserRegisterRequest, UserRegisterResponse

router = APIRouter(tags=["internal", "users"])


@router.post("/internal/users/register", response_model=UserRegisterResponse)
async def register_user(payload: UserRegisterRequest, request: Request) -> UserRegisterResponse:
    _assert_internal_access(request)

    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await UserOnboardingService.register(
            session,
            phone_number=payload.phone_number,
            username=payload.username,
            role=payload.role,
            currency=settings.ledger_currency,
            welcome_bonus=settings.welcome_bonus_amount,
            now_utc=now_utc,
        )

    return UserRegisterResponse(
        user_id=result.user_id,
        phone_number=result.phone_number,
        role=result.role,
        created=result.created,
        balance=_balance_as_response(result.balance),
    )
