# src/rulebook_engine/adapters/uow/sqlalchemy_uow.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""SQLAlchemy-backed Unit of Work implementation.

Purpose:
    Provide a concrete implementation of the application-layer UnitOfWork
    protocol using SQLAlchemy's AsyncSession. This UoW coordinates one or
    more repository instances within a single session scope.

Layer:
    adapters/uow

Notes:
    ``commit`` and ``rollback`` may be called any number of times inside one
    scope. Each ends the current transaction; the session begins a new one on
    the next statement. Generation relies on this to persist every ledger and
    task write independently.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

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
from rulebook_engine.application.uow import UnitOfWork
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


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy-based UnitOfWork implementation.

    Coordinates a single AsyncSession and a set of repositories. Intended to
    be used via:

        async with SqlAlchemyUnitOfWork(session_factory=factory) as uow:
            repo = uow.get_repository(RulebookRepository)
            ...
            await uow.commit()
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        repo_factories: Mapping[type[Any], Callable[[AsyncSession], Any]] | None = None,
    ) -> None:
        """Initialize the UnitOfWork.

        Args:
            session_factory:
                Factory for creating new AsyncSession instances.
            repo_factories:
                Optional mapping from repository protocol to a factory taking
                an AsyncSession and returning a repository instance. Entries
                override the default SQLAlchemy wiring.
        """
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

        default_factories: dict[type[Any], Callable[[AsyncSession], Any]] = {
            RulebookRepository: lambda s: SqlAlchemyRulebookRepository(session=s),
            PracticeDirectoryRepository: lambda s: SqlAlchemyPracticeDirectoryRepository(
                session=s
            ),
            GenerationLedgerRepository: lambda s: SqlAlchemyGenerationLedgerRepository(session=s),
            TaskRepository: lambda s: SqlAlchemyTaskRepository(session=s),
            AuditLogRepository: lambda s: SqlAlchemyAuditLogRepository(session=s),
            GenerationRunRepository: lambda s: SqlAlchemyGenerationRunRepository(session=s),
        }

        self._repo_factories: dict[type[Any], Callable[[AsyncSession], Any]] = {
            **default_factories,
            **(dict(repo_factories) if repo_factories is not None else {}),
        }

        self._repos: dict[type[Any], Any] = {}

    # ------------------------------------------------------------------
    # Async context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        """Enter the UnitOfWork context and open a new AsyncSession.

        Raises:
            RuntimeError: If a session is already active (nested usage).
        """
        if self._session is not None:
            raise RuntimeError("UnitOfWork is already active; nested usage is not supported.")

        self._session = self._session_factory()
        self._repos.clear()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Exit the UnitOfWork context.

        Behavior:
            * If an exception occurred, rolls back the open transaction.
            * Closes the AsyncSession (discarding uncommitted work) and clears
              cached repositories.

        Returns:
            Always returns None; exceptions are propagated.
        """
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            if self._session is not None:
                await self._session.close()
                self._session = None
            self._repos.clear()
        return None

    # ------------------------------------------------------------------
    # Transaction control
    # ------------------------------------------------------------------

    async def commit(self) -> None:
        """Commit the current transaction.

        Raises:
            RuntimeError: If called without an active session.
        """
        if self._session is None:
            raise RuntimeError("Cannot commit: UnitOfWork has no active session.")
        await self._session.commit()

    async def rollback(self) -> None:
        """Roll back the current transaction. No-op without an active session."""
        if self._session is None:
            return
        await self._session.rollback()

    # ------------------------------------------------------------------
    # Repository resolution
    # ------------------------------------------------------------------

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return a repository instance for the given protocol.

        The instance is created via a configured factory on first request
        and cached for subsequent calls within the same UnitOfWork context.

        Raises:
            RuntimeError: If called outside of an active UnitOfWork context.
            KeyError: If no factory is registered for the given repo_type.
        """
        if self._session is None:
            raise RuntimeError(
                "get_repository() called outside of an active UnitOfWork scope. "
                "Use 'async with uow:' before requesting repositories.",
            )

        if repo_type in self._repos:
            return self._repos[repo_type]

        try:
            factory = self._repo_factories[repo_type]
        except KeyError as exc:
            raise KeyError(
                f"No repository factory registered for type {repo_type!r}.",
            ) from exc

        repo = factory(self._session)
        self._repos[repo_type] = repo
        return repo
