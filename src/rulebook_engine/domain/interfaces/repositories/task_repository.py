# src/rulebook_engine/domain/interfaces/repositories/task_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Host task repository interface.

Purpose:
    Find and create host-application tasks for generation candidates.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from typing import Protocol

from rulebook_engine.domain.entities.generation import GenerationCandidate


class TaskRepository(Protocol):
    """Protocol for task lookups and inserts."""

    async def find_matching_task(self, tenant_id: str, candidate: GenerationCandidate) -> str | None:
        """Return the id of a task with the candidate's client, title, due date and period."""

    async def create_task(
        self,
        *,
        tenant_id: str,
        created_by: str,
        candidate: GenerationCandidate,
    ) -> str:
        """Insert a ``todo`` task for the candidate and return its id.

        Raises:
            TaskCreationError: If the insert fails.
        """
