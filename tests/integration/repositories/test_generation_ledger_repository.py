# tests/integration/repositories/test_generation_ledger_repository.py
from __future__ import annotations

from datetime import date

import pytest
from practice_seed import SeededPractice
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rulebook_engine.adapters.repositories.generation_ledger_repository import (
    SqlAlchemyGenerationLedgerRepository,
)
from rulebook_engine.adapters.repositories.rulebook_repository import (
    SqlAlchemyRulebookRepository,
)
from rulebook_engine.adapters.repositories.task_repository import SqlAlchemyTaskRepository
from rulebook_engine.domain.entities.generation import GenerationCandidate
from rulebook_engine.domain.enums.rulebook import GenerationStatus, TaskRecurrence
from rulebook_engine.domain.exceptions.rulebook import GenerationRecordConflictError
from rulebook_engine.domain.services.default_rules import DEFAULT_RULEBOOK_RULES
from rulebook_engine.infrastructure.database.models import RulebookTaskGenerationModel


async def _seed_rule(
    session_factory: async_sessionmaker[AsyncSession], practice: SeededPractice
) -> str:
    async with session_factory() as session:
        repo = SqlAlchemyRulebookRepository(session)
        version = await repo.create_version(
            tenant_id=practice.tenant_id,
            code="v1",
            name="V1",
            description=None,
            effective_from=date(2026, 1, 1),
        )
        await repo.upsert_rules(
            tenant_id=practice.tenant_id,
            version_id=version.id,
            rules=DEFAULT_RULEBOOK_RULES[:1],
        )
        (rule,) = await repo.list_active_rules(practice.tenant_id, version.id)
        await session.commit()
    return rule.id


def _candidate(practice: SeededPractice, rule_id: str) -> GenerationCandidate:
    return GenerationCandidate(
        client_id=practice.fop_client_id,
        rule_id=rule_id,
        rule_code="single_tax_monthly_payment_fop12",
        period_key="2026-01",
        due_date=date(2026, 1, 20),
        title="Pay single tax",
        description="Legal basis: Tax Code art. 295.1",
        task_type="payment",
        priority=2,
        proof_required=True,
        recurrence=TaskRecurrence.MONTHLY,
        recurrence_days=None,
        assignee_id=practice.admin_id,
        legal_basis=("Tax Code art. 295.1",),
    )


async def test_create_then_get(
    session_factory: async_sessionmaker[AsyncSession], practice: SeededPractice
) -> None:
    candidate = _candidate(practice, await _seed_rule(session_factory, practice))

    async with session_factory() as session:
        repo = SqlAlchemyGenerationLedgerRepository(session)
        created = await repo.create(tenant_id=practice.tenant_id, candidate=candidate)
        await session.commit()
        fetched = await repo.get(
            tenant_id=practice.tenant_id,
            client_id=candidate.client_id,
            rule_id=candidate.rule_id,
            period_key="2026-01",
        )
        context = (
            await session.execute(select(RulebookTaskGenerationModel.generation_context))
        ).scalar_one()

    assert fetched == created
    assert created.status is GenerationStatus.CREATED
    assert created.is_linked is False
    assert created.scheduled_due_date == date(2026, 1, 20)
    assert context == {
        "rule_code": "single_tax_monthly_payment_fop12",
        "task_title": "Pay single tax",
        "legal_basis": ["Tax Code art. 295.1"],
    }


async def test_duplicate_key_raises_conflict(
    session_factory: async_sessionmaker[AsyncSession], practice: SeededPractice
) -> None:
    candidate = _candidate(practice, await _seed_rule(session_factory, practice))
    async with session_factory() as session:
        await SqlAlchemyGenerationLedgerRepository(session).create(
            tenant_id=practice.tenant_id, candidate=candidate
        )
        await session.commit()

    async with session_factory() as session:
        repo = SqlAlchemyGenerationLedgerRepository(session)
        with pytest.raises(GenerationRecordConflictError):
            await repo.create(tenant_id=practice.tenant_id, candidate=candidate)
        await session.rollback()


async def test_mark_error_then_link_task(
    session_factory: async_sessionmaker[AsyncSession], practice: SeededPractice
) -> None:
    candidate = _candidate(practice, await _seed_rule(session_factory, practice))

    async with session_factory() as session:
        ledger = SqlAlchemyGenerationLedgerRepository(session)
        record = await ledger.create(tenant_id=practice.tenant_id, candidate=candidate)
        await ledger.mark_error(record.id, "boom")
        await session.commit()
        errored = await ledger.get(
            tenant_id=practice.tenant_id,
            client_id=candidate.client_id,
            rule_id=candidate.rule_id,
            period_key=candidate.period_key,
        )

        task_id = await SqlAlchemyTaskRepository(session).create_task(
            tenant_id=practice.tenant_id, created_by=practice.admin_id, candidate=candidate
        )
        await ledger.link_task(record.id, task_id)
        await session.commit()
        linked = await ledger.get(
            tenant_id=practice.tenant_id,
            client_id=candidate.client_id,
            rule_id=candidate.rule_id,
            period_key=candidate.period_key,
        )

    assert errored is not None
    assert errored.status is GenerationStatus.ERROR
    assert errored.error_message == "boom"
    assert linked is not None
    assert linked.status is GenerationStatus.LINKED
    assert linked.generated_task_id == task_id
    assert linked.error_message is None
