from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.users_repo import UsersRepo
from app.economy.wallet.service import WalletService
from app.economy.wallet.types import WalletBalance

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class RegistrationResult:
    user_id: int
    phone_number: str
    role: str
    created: bool
    balance: WalletBalance


class UserOnboardingService:
    @staticmethod
    async def register(
        session: AsyncSession,
        *,
        phone_number: str,
        username: str | None,
        currency: str,
        welcome_bonus: int,
        now_utc: datetime,
        role: str = "USER",
    ) -> RegistrationResult:
        # Concurrent sign-ups for one phone number resolve to the same row.
        user, created = await UsersRepo.create_if_absent(
            session,
            phone_number=phone_number,
            username=username,
            role=role,
        )
        if created:
            logger.info("user_registered", user_id=user.id, role=role)

        # Re-registration of an existing phone number replays the welcome bonus by key.
        balance = await WalletService.open_account(
            session,
            user_id=user.id,
            currency=currency,
            welcome_bonus=welcome_bonus,
            now_utc=now_utc,
        )
        return RegistrationResult(
            user_id=user.id,
            phone_number=user.phone_number,
            role=user.role,
            created=created,
            balance=balance,
        )
