# src/rulebook_engine/infrastructure/database/session.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Async SQLAlchemy engine and session factory.

This module owns the process-global async SQLAlchemy engine and
`async_sessionmaker`.

Lifecycle:
    * Call `init_engine_and_sessionmaker(settings)` at startup (app lifespan or CLI command).
    * Build sessions through `get_sessionmaker()` (the UnitOfWork does this).
    * Call `dispose_engine()` during shutdown.

Notes:
    * No business logic here; repositories consume the session.
    * `pool_pre_ping=True` helps surface dead connections before use.
    * Callers that skip lifespan get lazy initialization via `get_settings()`.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rulebook_engine.config.settings import Settings, get_settings

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def init_engine_and_sessionmaker(settings: Settings) -> None:
    """Initialize the global async engine and sessionmaker.

    Args:
        settings: Application settings providing `database_url`.

    Raises:
        ValueError: If `database_url` is empty.
    """
    global _engine, _sessionmaker

    if not settings.database_url:
        raise ValueError("database_url must be configured")
    if _engine is not None:
        # Already initialized (idempotent).
        return

    _engine = create_async_engine(
        url=settings.database_url,
        pool_pre_ping=True,
        echo=False,
    )
    _sessionmaker = async_sessionmaker(bind=_engine, expire_on_commit=False, class_=AsyncSession)


async def dispose_engine() -> None:
    """Dispose the global engine at shutdown."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Return the initialized async sessionmaker, initializing lazily if needed.

    Returns:
        async_sessionmaker[AsyncSession]: The global session factory.
    """
    if _sessionmaker is None:
        init_engine_and_sessionmaker(get_settings())
    assert _sessionmaker is not None
    return _sessionmaker

