from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.purchase_records_repo import PurchaseRecordsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.errors import UserNotFoundError
from app.economy.purchases.types import PurchaseResult

from .builder import _as_purchase_result


async def list_purchases(
    session: AsyncSession,
    *,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
) -> list[PurchaseResult]:
    user = await UsersRepo.get_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError(f"user {user_id} not found")

    records = await PurchaseRecordsRepo.list_by_user(
        session,
        user_id=user_id,
        limit=limit,
        offset=offset,
    )
    return [_as_purchase_result(record) for record in records]
