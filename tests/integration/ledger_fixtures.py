from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from app.db.models.content import ContentItem, Episode, Season
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.wallet.service import WalletService
from app.services.payment_gateway import GatewayInitiation

UTC = timezone.utc
SEED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


async def _create_user(seed: str, *, welcome_bonus: int = 0, role: str = "USER") -> int:
    async with SessionLocal.begin() as session:
        user = await UsersRepo.create(
            session,
            phone_number=f"+2507{abs(hash(seed)) % 100_000_000:08d}",
            username=f"it-{seed}"[:64],
            role=role,
        )
        await WalletService.open_account(
            session,
            user_id=user.id,
            currency="RWF",
            welcome_bonus=welcome_bonus,
            now_utc=SEED_NOW,
        )
        return user.id


async def _fund_primary(user_id: int, amount: int, *, seed: str) -> None:
    async with SessionLocal.begin() as session:
        await WalletService.adjust(
            session,
            user_id=user_id,
            amount=amount,
            description="Integration funding",
            idempotency_key=f"fund:{seed}",
            now_utc=SEED_NOW,
        )


async def _create_movie(*, price: int, title: str = "Integration Movie") -> UUID:
    async with SessionLocal.begin() as session:
        movie = ContentItem(id=uuid4(), content_type="MOVIE", title=title, price=price, currency="RWF")
        session.add(movie)
        await session.flush()
        return movie.id


async def _create_series(
    *,
    seasons: list[list[int]],
    discount_percent: int = 0,
    free_episode_numbers: frozenset[int] = frozenset(),
) -> tuple[UUID, list[UUID], list[list[UUID]]]:
    """Seed a series; ``seasons`` holds per-season episode prices in episode order."""
    async with SessionLocal.begin() as session:
        series = ContentItem(
            id=uuid4(),
            content_type="SERIES",
            title="Integration Series",
            price=0,
            discount_percent=discount_percent,
            currency="RWF",
        )
        session.add(series)
        await session.flush()

        season_ids: list[UUID] = []
        episode_ids: list[list[UUID]] = []
        for season_number, prices in enumerate(seasons, start=1):
            season = Season(id=uuid4(), content_id=series.id, season_number=season_number)
            session.add(season)
            await session.flush()
            season_ids.append(season.id)

            ids: list[UUID] = []
            for episode_number, price in enumerate(prices, start=1):
                episode = Episode(
                    id=uuid4(),
                    season_id=season.id,
                    content_id=series.id,
                    episode_number=episode_number,
                    price=price,
                    is_free=episode_number in free_episode_numbers,
                )
                session.add(episode)
                ids.append(episode.id)
            await session.flush()
            episode_ids.append(ids)
        return series.id, season_ids, episode_ids


async def _add_episode(*, content_id: UUID, season_id: UUID, episode_number: int, price: int) -> UUID:
    async with SessionLocal.begin() as session:
        episode = Episode(
            id=uuid4(),
            season_id=season_id,
            content_id=content_id,
            episode_number=episode_number,
            price=price,
            is_free=False,
        )
        session.add(episode)
        await session.flush()
        return episode.id


class StubGateway:
    def __init__(self) -> None:
        self.initiated: list[dict[str, object]] = []

    async def initiate(self, **kwargs: object) -> GatewayInitiation:
        self.initiated.append(kwargs)
        external_ref = str(kwargs["external_ref"])
        return GatewayInitiation(
            external_ref=external_ref,
            redirect_link=f"https://checkout.example.test/pay/{external_ref}",
        )
