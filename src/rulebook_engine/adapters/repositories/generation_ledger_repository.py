# src/rulebook_engine/adapters/repositories/generation_ledger_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Generation Ledger Repository (SQLAlchemy).

Purpose:
    Persist ``rulebook_task_generations`` rows, the idempotency ledger keyed by
    (tenant, client, rule, period key).

Layer:
    adapters

Notes:
    ``create`` flushes immediately so that a unique-key collision with a
    concurrent run surfaces here as ``GenerationRecordConflictError`` rather
    than at commit time.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_engine.adapters.repositories.base_repository import BaseRepository
from rulebook_engine.domain.entities.generation import GenerationCandidate, GenerationRecord
from rulebook_engine.domain.enums.rulebook import GenerationStatus
from rulebook_engine.domain.exceptions.rulebook import GenerationRecordConflictError
from rulebook_engine.infrastructure.database.models.rulebook import RulebookTaskGenerationModel


def _to_entity(row: RulebookTaskGenerationModel) -> GenerationRecord:
    return GenerationRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        client_id=row.client_id,
        rule_id=row.rule_id,
        period_key=row.period_key,
        scheduled_due_date=row.scheduled_due_date,
        status=GenerationStatus(row.status),
        generated_task_id=row.generated_task_id,
        error_message=row.error_message,
    )


class SqlAlchemyGenerationLedgerRepository(BaseRepository[RulebookTaskGenerationModel]):
    """SQLAlchemy-backed implementation of the generation ledger contract."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the primary database.
        """
        super().__init__(session=session)

    async def get(
        self,
        *,
        tenant_id: str,
        client_id: str,
        rule_id: str,
        period_key: str,
    ) -> GenerationRecord | None:
        """Return the ledger row for a candidate key, if any."""
        stmt = (
            select(RulebookTaskGenerationModel)
            .where(
                RulebookTaskGenerationModel.tenant_id == tenant_id,
                RulebookTaskGenerationModel.client_id == client_id,
                RulebookTaskGenerationModel.rule_id == rule_id,
                RulebookTaskGenerationModel.period_key == period_key,
            )
            .limit(1)
        )
        row = await self.fetch_optional(stmt)
        return _to_entity(row) if row is not None else None

    async def create(self, *, tenant_id: str, candidate: GenerationCandidate) -> GenerationRecord:
        """Insert a ``created`` row for the candidate.

        Raises:
            GenerationRecordConflictError: If the insert violates a constraint,
                normally the (tenant, client, rule, period key) unique key.
        """
        row = RulebookTaskGenerationModel(
            tenant_id=tenant_id,
            client_id=candidate.client_id,
            rule_id=candidate.rule_id,
            period_key=candidate.period_key,
            scheduled_due_date=candidate.due_date,
            status=GenerationStatus.CREATED.value,
            generation_context={
                "rule_code": candidate.rule_code,
                "task_title": candidate.title,
                "legal_basis": list(candidate.legal_basis),
            },
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise GenerationRecordConflictError(
                f"Generation record insert failed: {exc.orig}",
                details={
                    "client_id": candidate.client_id,
                    "rule_id": candidate.rule_id,
                    "period_key": candidate.period_key,
                },
            ) from exc
        return _to_entity(row)

    async def link_task(self, generation_id: str, task_id: str) -> None:
        """Attach a task, set status ``linked`` and clear the error message."""
        await self._session.execute(
            update(RulebookTaskGenerationModel)
            .where(RulebookTaskGenerationModel.id == generation_id)
            .values(
                generated_task_id=task_id,
                status=GenerationStatus.LINKED.value,
                error_message=None,
                updated_at=self.utc_now(),
            )
        )

    async def mark_error(self, generation_id: str, message: str) -> None:
        """Set status ``error`` with the given message."""
        await self._session.execute(
            update(RulebookTaskGenerationModel)
            .where(RulebookTaskGenerationModel.id == generation_id)
            .values(
                status=GenerationStatus.ERROR.value,
                error_message=message,
                updated_at=self.utc_now(),
            )
        )
