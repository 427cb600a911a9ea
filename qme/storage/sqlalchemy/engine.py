"""Database engine and session management."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from qme.config.settings import get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Get the shared async database engine (singleton).

    Postgres (asyncpg) in deployments, SQLite (aiosqlite) when
    ``QME_DATABASE_URL`` points at a file.
    """
    settings = get_settings()
    url = make_url(settings.database_url)
    logger.debug("Creating engine for %s", url.render_as_string(hide_password=True))
    return create_async_engine(
        url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )


@lru_cache(maxsize=1)
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the shared async session maker (singleton)."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Open a session on the shared engine, closed on exit."""
    async with get_session_maker()() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections and forget the cached engine.

    The next ``get_engine()`` call builds a new engine from current settings.
    """
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    get_session_maker.cache_clear()
    get_engine.cache_clear()
