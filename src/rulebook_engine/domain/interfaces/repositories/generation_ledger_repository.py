# src/rulebook_engine/domain/interfaces/repositories/generation_ledger_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Generation ledger repository interface.

Purpose:
    Persist the idempotency ledger that guarantees at most one generated
    task per (tenant, client, rule, period key).

Layer:
    domain/interfaces/repositories

Notes:
    ``create`` relies on the database unique constraint for concurrency
    control. On a conflict implementations raise
    ``GenerationRecordConflictError``; callers roll back and re-read the
    winning row.
"""

from __future__ import annotations

from typing import Protocol

from rulebook_engine.domain.entities.generation import GenerationCandidate, GenerationRecord


class GenerationLedgerRepository(Protocol):
    """Protocol for the generation ledger."""

    async def get(
        self,
        *,
        tenant_id: str,
        client_id: str,
        rule_id: str,
        period_key: str,
    ) -> GenerationRecord | None:
        """Return the ledger row for a candidate key, if any."""

    async def create(self, *, tenant_id: str, candidate: GenerationCandidate) -> GenerationRecord:
        """Insert a ``created`` row for the candidate.

        Raises:
            GenerationRecordConflictError: If a row already exists for the key.
        """

    async def link_task(self, generation_id: str, task_id: str) -> None:
        """Attach a task, set status ``linked`` and clear any error message."""

    async def mark_error(self, generation_id: str, message: str) -> None:
        """Set status ``error`` with an already truncated message."""
