# tests/integration/conftest.py
"""SQLite-backed fixtures for repository and end-to-end tests.

Every test gets a fresh file database under ``tmp_path`` with the full ORM
schema created from metadata. Ids are real UUID strings because the UUID
columns round-trip through their canonical form.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest
from practice_seed import SeededPractice, seed_practice
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rulebook_engine.adapters.uow.sqlalchemy_uow import SqlAlchemyUnitOfWork
from rulebook_engine.infrastructure.database.models import metadata


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    db_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rulebook.db'}")
    async with db_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    try:
        yield db_engine
    finally:
        await db_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as db_session:
        yield db_session


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SqlAlchemyUnitOfWork]:
    return lambda: SqlAlchemyUnitOfWork(session_factory=session_factory)


@pytest.fixture
async def practice(session_factory: async_sessionmaker[AsyncSession]) -> SeededPractice:
    return await seed_practice(session_factory)
