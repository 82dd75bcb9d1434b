from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from app.db.session import dispose_engine

T = TypeVar("T")


async def _with_fresh_engine(awaitable: Awaitable[T]) -> T:
    # asyncpg connections are bound to the loop that opened them.
    await dispose_engine()
    try:
        return await awaitable
    finally:
        await dispose_engine()


def run_async_job(awaitable: Awaitable[T]) -> T:
    """Run a coroutine from a sync Celery task on its own event loop."""
    return asyncio.run(_with_fresh_engine(awaitable))
