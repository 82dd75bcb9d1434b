from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: int) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_phone_number(session: AsyncSession, phone_number: str) -> User | None:
        stmt = select(User).where(User.phone_number == phone_number)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        phone_number: str,
        username: str | None,
        role: str = "USER",
    ) -> User:
        user = User(
            phone_number=phone_number,
            username=username,
            role=role,
            status="ACTIVE",
        )
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def create_if_absent(
        session: AsyncSession,
        *,
        phone_number: str,
        username: str | None,
        role: str = "USER",
    ) -> tuple[User, bool]:
        """Insert the user unless the phone number is taken; returns the row and whether it was created."""
        stmt = (
            postgresql_insert(User)
            .values(
                phone_number=phone_number,
                username=username,
                role=role,
                status="ACTIVE",
            )
            .on_conflict_do_nothing(index_elements=[User.phone_number])
            .returning(User.id)
        )
        result = await session.execute(stmt)
        created = result.scalar_one_or_none() is not None

        user = await UsersRepo.get_by_phone_number(session, phone_number)
        if user is None:
            raise RuntimeError(f"user with phone number {phone_number!r} vanished after upsert")
        return user, created
