"""Fixtures for grant storage tests against an in-memory SQLite database.

Each test gets a fresh engine, so tables and rows never leak between tests.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator:
    """In-memory SQLite engine with all tables created."""
    from tollgate.core.config import Settings
    from tollgate.db.session import build_async_engine
    from tollgate.models import Base

    from tests.integration.storage import entities  # noqa: F401  registers test tables

    engine = build_async_engine(Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncGenerator:
    """Session bound to the test engine."""
    from tollgate.db.session import build_sessionmaker

    async with build_sessionmaker(engine)() as session:
        yield session


@pytest_asyncio.fixture
async def members(db):
    """Three stored members: alice, bob and carol."""
    from tests.integration.storage.entities import Member

    rows = [Member(name=name) for name in ("alice", "bob", "carol")]
    db.add_all(rows)
    await db.commit()
    return rows


@pytest_asyncio.fixture
async def documents(db, members):
    """Three stored documents; the first two are owned by alice."""
    from tests.integration.storage.entities import Document

    alice = members[0]
    rows = [
        Document(title="plan", owner_id=alice.id),
        Document(title="report", owner_id=alice.id),
        Document(title="memo"),
    ]
    db.add_all(rows)
    await db.commit()
    return rows


@pytest.fixture
def service(registry):
    """AccessService backed by the real grant repository."""
    from tollgate.core.config import Settings
    from tollgate.core.container import create_container

    return create_container(Settings(), registry=registry).access_service
