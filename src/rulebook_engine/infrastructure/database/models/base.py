# src/rulebook_engine/infrastructure/database/models/base.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Declarative Base and canonical persistence mixins for the rulebook engine.

This module defines:
    - A project-wide SQLAlchemy Declarative Base with deterministic naming
      conventions (for stable Alembic diffs).
    - Persistence mixins for identity (UUIDv4 as text), audit timestamps (UTC)
      and audit actor.
    - A portable JSON column type (JSONB on PostgreSQL, JSON elsewhere).

Design Goals:
    * Production correctness: UTC everywhere, safe defaults, minimal surprises.
    * Deterministic schema: Alembic-friendly naming conventions prevent churn.
    * Separation of concerns: Persistence-only; no domain/business behavior.
    * Portability: models run unchanged on PostgreSQL and on SQLite in tests.
"""

from __future__ import annotations

import os
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, MetaData, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

__all__ = [
    "AuditActorMixin",
    "Base",
    "BaseEntity",
    "IdentityMixin",
    "JSONType",
    "TimestampMixin",
    "metadata",
    "new_id",
    "now_utc",
]

# ======================================================================================
# Configuration
# ======================================================================================

#: Default database schema for all tables. Unset means the connection default.
DEFAULT_DB_SCHEMA: str | None = os.getenv("DB_SCHEMA") or None

#: Deterministic naming conventions for Alembic-friendly diffs.
#: Ref: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTIONS: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTIONS, schema=DEFAULT_DB_SCHEMA)

#: JSON document column: JSONB on PostgreSQL, generic JSON on other dialects.
JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    """Return a new random UUIDv4 string identifier."""
    return str(uuid.uuid4())


def now_utc() -> datetime:
    """Return the current UTC time with timezone info."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative Base for all ORM models.

    The attached metadata carries stable naming conventions and the optional
    default schema from ``DB_SCHEMA``.
    """

    metadata = metadata


class IdentityMixin:
    """Mixin providing a UUIDv4 primary key ``id`` column (exposed as ``str``)."""

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=new_id,
        nullable=False,
    )


class TimestampMixin:
    """Mixin providing immutable ``created_at`` and mutable ``updated_at`` timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        onupdate=now_utc,
        server_default=func.now(),
    )


class AuditActorMixin:
    """Mixin recording the profile that created a row."""

    created_by: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        nullable=True,
    )


class BaseEntity(IdentityMixin, TimestampMixin, Base):
    """Concrete base class for most entities in the system."""

    __abstract__ = True

    def touch(self) -> None:
        """Update the ``updated_at`` timestamp to now (UTC)."""
        self.updated_at = now_utc()

