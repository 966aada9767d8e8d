# tests/integration/test_rulebook_generation_flow.py
"""Init and generation against a real (SQLite) database through the UoW."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from practice_seed import SeededPractice
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rulebook_engine.adapters.uow.sqlalchemy_uow import SqlAlchemyUnitOfWork
from rulebook_engine.application.schemas.dto.rulebook import (
    InitRulebookRequestDTO,
    RunRulebookGenerationRequestDTO,
    ScheduledGenerationRequestDTO,
)
from rulebook_engine.application.use_cases.rulebook.init_rulebook_for_tenant import (
    InitRulebookForTenantUseCase,
)
from rulebook_engine.application.use_cases.rulebook.run_rulebook_task_generation import (
    RunRulebookTaskGenerationUseCase,
)
from rulebook_engine.application.use_cases.rulebook.run_scheduled_generation import (
    RunScheduledGenerationUseCase,
)
from rulebook_engine.infrastructure.database.models import (
    AuditLogEntry,
    RulebookGenerationRunModel,
    RulebookTaskGenerationModel,
    RulebookVersionModel,
    Task,
)

UowFactory = Callable[[], SqlAlchemyUnitOfWork]


async def _count(session_factory: async_sessionmaker[AsyncSession], model: type) -> int:
    async with session_factory() as session:
        return int((await session.execute(select(func.count()).select_from(model))).scalar_one())


async def _init(uow_factory: UowFactory, tenant_id: str, **kwargs: object) -> None:
    await InitRulebookForTenantUseCase(uow=uow_factory()).execute(
        InitRulebookRequestDTO(tenant_id=tenant_id, **kwargs)  # type: ignore[arg-type]
    )


def _generation_request(tenant_id: str) -> RunRulebookGenerationRequestDTO:
    return RunRulebookGenerationRequestDTO(
        tenant_id=tenant_id, from_date=date(2026, 1, 1), to_date=date(2026, 3, 31)
    )


async def test_init_is_idempotent_and_keeps_one_active_version(
    uow_factory: UowFactory,
    session_factory: async_sessionmaker[AsyncSession],
    practice: SeededPractice,
) -> None:
    await _init(uow_factory, practice.tenant_id)
    await _init(uow_factory, practice.tenant_id)
    await _init(uow_factory, practice.tenant_id, version_code="ua-core-2027")

    async with session_factory() as session:
        active = (
            (
                await session.execute(
                    select(RulebookVersionModel.code).where(
                        RulebookVersionModel.tenant_id == practice.tenant_id,
                        RulebookVersionModel.is_active.is_(True),
                    )
                )
            )
            .scalars()
            .all()
        )
    assert active == ["ua-core-2027"]
    assert await _count(session_factory, RulebookVersionModel) == 2


async def test_generation_twice_creates_each_task_once(
    uow_factory: UowFactory,
    session_factory: async_sessionmaker[AsyncSession],
    practice: SeededPractice,
) -> None:
    await _init(uow_factory, practice.tenant_id, actor_profile_id=practice.admin_id)

    first = await RunRulebookTaskGenerationUseCase(uow=uow_factory()).execute(
        _generation_request(practice.tenant_id)
    )

    assert first.errors == []
    assert first.processed_clients == 2
    assert first.created_tasks > 0
    assert first.created_tasks == first.matched_candidates
    task_count = await _count(session_factory, Task)
    assert task_count == first.created_tasks
    assert await _count(session_factory, RulebookTaskGenerationModel) == task_count

    second = await RunRulebookTaskGenerationUseCase(uow=uow_factory()).execute(
        _generation_request(practice.tenant_id)
    )

    assert second.created_tasks == 0
    assert second.skipped_already_generated == first.created_tasks
    assert await _count(session_factory, Task) == task_count
    assert await _count(session_factory, RulebookGenerationRunModel) == 2
    assert await _count(session_factory, AuditLogEntry) == 2

    async with session_factory() as session:
        statuses = set(
            (await session.execute(select(RulebookTaskGenerationModel.status))).scalars().all()
        )
        authors = set((await session.execute(select(Task.created_by))).scalars().all())
    assert statuses == {"linked"}
    assert authors == {practice.admin_id}


async def test_fop_tasks_fall_back_to_admin_assignee(
    uow_factory: UowFactory,
    session_factory: async_sessionmaker[AsyncSession],
    practice: SeededPractice,
) -> None:
    await _init(uow_factory, practice.tenant_id)
    await RunRulebookTaskGenerationUseCase(uow=uow_factory()).execute(
        _generation_request(practice.tenant_id)
    )

    async with session_factory() as session:
        rows = (await session.execute(select(Task.client_id, Task.assignee_id))).all()
    assignees = {client_id: set() for client_id, _ in rows}
    for client_id, assignee_id in rows:
        assignees[client_id].add(assignee_id)

    assert assignees[practice.fop_client_id] == {practice.admin_id}
    assert assignees[practice.llc_client_id] == {practice.accountant_id}
    assert practice.archived_client_id not in assignees


async def test_scheduled_run_over_all_active_tenants(
    uow_factory: UowFactory,
    session_factory: async_sessionmaker[AsyncSession],
    practice: SeededPractice,
) -> None:
    await _init(uow_factory, practice.tenant_id)
    use_case = RunScheduledGenerationUseCase(
        uow_factory=uow_factory,
        generation_factory=lambda: RunRulebookTaskGenerationUseCase(uow=uow_factory()),
    )

    summary = await use_case.execute(
        ScheduledGenerationRequestDTO(from_date=date(2026, 1, 1), to_date=date(2026, 1, 31))
    )

    assert summary.source == "all_active_tenants"
    assert [r.tenant_id for r in summary.results] == [
        practice.tenant_id,
        practice.other_tenant_id,
    ]
    assert all(r.status == "ok" for r in summary.results)
    main, other = summary.results
    assert main.summary is not None and main.summary.created_tasks > 0
    assert other.summary is not None and other.summary.active_version is None
