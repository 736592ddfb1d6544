"""Database session configuration."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from tollgate.core.config import Settings, settings


def build_async_engine(config: Settings = settings) -> AsyncEngine:
    """Create the async engine for ``config``.

    Postgres gets a sized pool. SQLite (tests, local runs) gets no pool tuning;
    an in-memory database is pinned to one connection so every session sees
    the same tables.
    """
    url = config.SQLALCHEMY_ASYNC_DATABASE_URI
    if config.is_sqlite:
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=config.DB_ECHO, **kwargs)

    return create_async_engine(
        url,
        echo=config.DB_ECHO,
        pool_size=config.db_pool_size,
        max_overflow=config.db_pool_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,  # Recycle connections after 5 minutes
        pool_timeout=config.db_pool_timeout,
        connect_args={
            "server_settings": {"idle_in_transaction_session_timeout": "300000"},
            "command_timeout": 60,
        },
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )


async_engine = build_async_engine()

AsyncSessionLocal = build_sessionmaker(async_engine)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session that can be used as a context manager.

    Yields:
        AsyncSession: An async database session

    Example:
    -------
        async with get_db_context() as db:
            await checker.access_check(db, "read", actor, target)

    """
    async with AsyncSessionLocal() as db:
        yield db


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session to be used in dependency injection.

    Yields:
    ------
        AsyncSession: An async database session

    """
    async with AsyncSessionLocal() as db:
        yield db
