# src/rulebook_engine/adapters/repositories/generation_run_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Generation Run Repository (SQLAlchemy).

Purpose:
    Track ``rulebook_generation_runs`` rows: one per non-dry-run invocation,
    moving from ``running`` to ``completed`` or ``failed``.

Layer:
    adapters
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_engine.adapters.repositories.base_repository import BaseRepository
from rulebook_engine.domain.enums.rulebook import GenerationRunStatus
from rulebook_engine.infrastructure.database.models.rulebook import RulebookGenerationRunModel


class SqlAlchemyGenerationRunRepository(BaseRepository[RulebookGenerationRunModel]):
    """SQLAlchemy-backed implementation of the generation run contract."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the primary database.
        """
        super().__init__(session=session)

    async def start_run(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        from_date: date,
        to_date: date,
        dry_run: bool,
    ) -> str:
        """Insert a ``running`` row and return its id."""
        row = RulebookGenerationRunModel(
            tenant_id=tenant_id,
            actor_id=actor_id,
            from_date=from_date,
            to_date=to_date,
            dry_run=dry_run,
            status=GenerationRunStatus.RUNNING.value,
            started_at=self.utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row.id

    async def complete_run(self, run_id: str, summary: Mapping[str, Any]) -> None:
        """Mark the run ``completed`` and store its summary."""
        await self._finish(
            run_id,
            status=GenerationRunStatus.COMPLETED,
            summary=dict(summary),
            error_message=None,
        )

    async def fail_run(self, run_id: str, error_message: str) -> None:
        """Mark the run ``failed`` with an error message."""
        await self._finish(
            run_id,
            status=GenerationRunStatus.FAILED,
            summary=None,
            error_message=error_message,
        )

    async def _finish(
        self,
        run_id: str,
        *,
        status: GenerationRunStatus,
        summary: dict[str, Any] | None,
        error_message: str | None,
    ) -> None:
        now = self.utc_now()
        await self._session.execute(
            update(RulebookGenerationRunModel)
            .where(RulebookGenerationRunModel.id == run_id)
            .values(
                status=status.value,
                summary=summary,
                error_message=error_message,
                finished_at=now,
                updated_at=now,
            )
        )
