# tests/unit/adapters/uow/test_sqlalchemy_uow.py
from __future__ import annotations

from typing import Any

import pytest

from rulebook_engine.adapters.repositories.audit_log_repository import (
    SqlAlchemyAuditLogRepository,
)
from rulebook_engine.adapters.repositories.generation_ledger_repository import (
    SqlAlchemyGenerationLedgerRepository,
)
from rulebook_engine.adapters.repositories.generation_run_repository import (
    SqlAlchemyGenerationRunRepository,
)
from rulebook_engine.adapters.repositories.practice_directory_repository import (
    SqlAlchemyPracticeDirectoryRepository,
)
from rulebook_engine.adapters.repositories.rulebook_repository import (
    SqlAlchemyRulebookRepository,
)
from rulebook_engine.adapters.repositories.task_repository import SqlAlchemyTaskRepository
from rulebook_engine.adapters.uow.sqlalchemy_uow import SqlAlchemyUnitOfWork
from rulebook_engine.domain.interfaces.repositories.audit_log_repository import (
    AuditLogRepository,
)
from rulebook_engine.domain.interfaces.repositories.generation_ledger_repository import (
    GenerationLedgerRepository,
)
from rulebook_engine.domain.interfaces.repositories.generation_run_repository import (
    GenerationRunRepository,
)
from rulebook_engine.domain.interfaces.repositories.practice_directory_repository import (
    PracticeDirectoryRepository,
)
from rulebook_engine.domain.interfaces.repositories.rulebook_repository import (
    RulebookRepository,
)
from rulebook_engine.domain.interfaces.repositories.task_repository import TaskRepository


class _FakeAsyncSession:
    """Async-session stand-in exposing only what the UoW touches."""

    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def close(self) -> None:
        self.closed = True


class _SessionFactory:
    def __init__(self) -> None:
        self.sessions: list[_FakeAsyncSession] = []

    def __call__(self) -> _FakeAsyncSession:
        session = _FakeAsyncSession()
        self.sessions.append(session)
        return session


def _uow(**kwargs: Any) -> tuple[SqlAlchemyUnitOfWork, _SessionFactory]:
    factory = _SessionFactory()
    return SqlAlchemyUnitOfWork(session_factory=factory, **kwargs), factory  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("port", "impl"),
    [
        (RulebookRepository, SqlAlchemyRulebookRepository),
        (PracticeDirectoryRepository, SqlAlchemyPracticeDirectoryRepository),
        (GenerationLedgerRepository, SqlAlchemyGenerationLedgerRepository),
        (TaskRepository, SqlAlchemyTaskRepository),
        (AuditLogRepository, SqlAlchemyAuditLogRepository),
        (GenerationRunRepository, SqlAlchemyGenerationRunRepository),
    ],
)
async def test_resolves_default_repositories(port: type[Any], impl: type[Any]) -> None:
    uow, _ = _uow()

    async with uow as tx:
        repo = tx.get_repository(port)
        assert isinstance(repo, impl)
        assert tx.get_repository(port) is repo


async def test_commit_and_rollback_can_repeat_within_scope() -> None:
    uow, factory = _uow()

    async with uow as tx:
        await tx.commit()
        await tx.rollback()
        await tx.commit()

    (session,) = factory.sessions
    assert session.commits == 2
    assert session.rollbacks == 1
    assert session.closed is True


async def test_exception_rolls_back_and_closes() -> None:
    uow, factory = _uow()

    with pytest.raises(ValueError):
        async with uow:
            raise ValueError("boom")

    (session,) = factory.sessions
    assert session.rollbacks == 1
    assert session.commits == 0
    assert session.closed is True


async def test_scope_can_be_reentered_after_exit() -> None:
    uow, factory = _uow()

    async with uow as tx:
        first = tx.get_repository(RulebookRepository)
    async with uow as tx:
        second = tx.get_repository(RulebookRepository)

    assert first is not second
    assert len(factory.sessions) == 2


async def test_nested_usage_is_rejected() -> None:
    uow, _ = _uow()

    async with uow:
        with pytest.raises(RuntimeError):
            await uow.__aenter__()


async def test_repository_access_requires_active_scope() -> None:
    uow, _ = _uow()

    with pytest.raises(RuntimeError):
        uow.get_repository(RulebookRepository)
    with pytest.raises(RuntimeError):
        await uow.commit()
    await uow.rollback()


async def test_unknown_repository_type_raises_key_error() -> None:
    uow, _ = _uow()

    async with uow as tx:
        with pytest.raises(KeyError):
            tx.get_repository(dict)


async def test_repo_factories_override_defaults() -> None:
    sentinel = object()
    uow, factory = _uow(repo_factories={TaskRepository: lambda session: (sentinel, session)})

    async with uow as tx:
        repo, session = tx.get_repository(TaskRepository)

    assert repo is sentinel
    assert session is factory.sessions[0]
