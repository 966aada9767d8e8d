# migrations/env.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Alembic Environment (migrations/env.py)

Purpose:
    Run rulebook engine migrations against the database configured for the
    application, offline (SQL script) or online through the async engine.

Design:
    - The database URL and schema come from ``Settings`` (``DATABASE_URL``,
      ``DB_SCHEMA``, ``.env``), the same source the service uses.
    - Uses the ORM metadata for autogenerate (``target_metadata``).
    - Stores the Alembic version table in ``DB_SCHEMA`` when one is set,
      otherwise in the connection's default schema.

Usage:
    # Offline (SQL script):
    alembic upgrade head --sql

    # Online (apply to DB):
    alembic upgrade head
"""

from __future__ import annotations

import asyncio
import logging
import logging.config

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from rulebook_engine.config.settings import get_settings
from rulebook_engine.infrastructure.database.models import metadata as BaseMetadata

config = context.config

if config.config_file_name is not None:
    logging.config.fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

_VERSION_TABLE = "alembic_version"

settings = get_settings()
target_metadata = BaseMetadata


def _context_options() -> dict[str, object]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "include_schemas": settings.db_schema is not None,
        "version_table": _VERSION_TABLE,
        "version_table_schema": settings.db_schema,
    }


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (SQL script output)."""
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(),
    )

    with context.begin_transaction():
        context.run_migrations()


def _configure_and_run(connection: Connection) -> None:
    context.configure(connection=connection, **_context_options())

    with context.begin_transaction():
        context.run_migrations()


async def _run_migrations_async() -> None:
    """Run migrations in 'online' mode using an async engine."""
    logger.info(
        "Running migrations",
        extra={"environment": settings.environment.value, "db_schema": settings.db_schema},
    )
    connectable = create_async_engine(settings.database_url, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(_configure_and_run)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Entry point used by Alembic for online migrations."""
    asyncio.run(_run_migrations_async())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
