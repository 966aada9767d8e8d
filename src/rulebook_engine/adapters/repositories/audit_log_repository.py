# src/rulebook_engine/adapters/repositories/audit_log_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Audit Log Repository (SQLAlchemy)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_engine.adapters.repositories.base_repository import BaseRepository
from rulebook_engine.infrastructure.database.models.practice import AuditLogEntry


class SqlAlchemyAuditLogRepository(BaseRepository[AuditLogEntry]):
    """Append-only audit log writer."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the primary database.
        """
        super().__init__(session=session)

    async def append(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        entity: str,
        entity_id: str,
        action: str,
        meta: Mapping[str, Any],
    ) -> None:
        """Append one audit entry."""
        self._session.add(
            AuditLogEntry(
                tenant_id=tenant_id,
                actor_id=actor_id,
                entity=entity,
                entity_id=entity_id,
                action=action,
                meta=dict(meta),
            )
        )
        await self._session.flush()
