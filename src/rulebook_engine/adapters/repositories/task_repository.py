# src/rulebook_engine/adapters/repositories/task_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Task Repository (SQLAlchemy).

Purpose:
    Find and insert host tasks for generation candidates.

Layer:
    adapters
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_engine.adapters.repositories.base_repository import BaseRepository
from rulebook_engine.domain.entities.generation import GenerationCandidate
from rulebook_engine.domain.exceptions.rulebook import TaskCreationError
from rulebook_engine.infrastructure.database.models.practice import Task

NEW_TASK_STATUS = "todo"


class SqlAlchemyTaskRepository(BaseRepository[Task]):
    """SQLAlchemy-backed implementation of the task contract."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the primary database.
        """
        super().__init__(session=session)

    async def find_matching_task(self, tenant_id: str, candidate: GenerationCandidate) -> str | None:
        """Return an existing task with the same client, title, due date and period."""
        stmt = (
            select(Task.id)
            .where(
                Task.tenant_id == tenant_id,
                Task.client_id == candidate.client_id,
                Task.title == candidate.title,
                Task.due_date == candidate.due_date,
                Task.period == candidate.period_key,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        task_id = result.scalars().first()
        return str(task_id) if task_id is not None else None

    async def create_task(
        self,
        *,
        tenant_id: str,
        created_by: str,
        candidate: GenerationCandidate,
    ) -> str:
        """Insert a ``todo`` task for the candidate.

        Raises:
            TaskCreationError: If the insert fails.
        """
        row = Task(
            tenant_id=tenant_id,
            client_id=candidate.client_id,
            title=candidate.title,
            description=candidate.description,
            status=NEW_TASK_STATUS,
            type=candidate.task_type,
            due_date=candidate.due_date,
            priority=candidate.priority,
            assignee_id=candidate.assignee_id,
            created_by=created_by,
            recurrence=candidate.recurrence.value,
            recurrence_days=(
                list(candidate.recurrence_days) if candidate.recurrence_days is not None else None
            ),
            period=candidate.period_key,
            proof_required=candidate.proof_required,
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except SQLAlchemyError as exc:
            raise TaskCreationError(
                f"Task insert failed: {getattr(exc, 'orig', None) or exc}",
                details={"client_id": candidate.client_id, "period_key": candidate.period_key},
            ) from exc
        return row.id
