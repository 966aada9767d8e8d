# src/rulebook_engine/dependencies/rulebook.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Dependency wiring for rulebook use cases.

Purpose:
    Construct rulebook use cases with their SQLAlchemy UnitOfWork, tuning from
    ``Settings`` and the Prometheus observer. Shared by the CLI and the
    internal HTTP router so both surfaces run identical wiring.

Layer:
    dependencies

Notes:
    ``get_uow_factory`` and ``get_settings_dependency`` are FastAPI
    dependencies; tests override them to run against SQLite or fakes.
"""

from __future__ import annotations

from collections.abc import Callable

from rulebook_engine.adapters.uow import SqlAlchemyUnitOfWork
from rulebook_engine.application.uow import UnitOfWork
from rulebook_engine.application.use_cases.rulebook.init_rulebook_for_tenant import (
    InitRulebookForTenantUseCase,
)
from rulebook_engine.application.use_cases.rulebook.manage_rulebook_rules import (
    DeleteRulebookRuleUseCase,
    SetRulebookRuleActiveUseCase,
    UpsertRulebookRuleUseCase,
)
from rulebook_engine.application.use_cases.rulebook.run_rulebook_task_generation import (
    RunRulebookTaskGenerationUseCase,
)
from rulebook_engine.application.use_cases.rulebook.run_scheduled_generation import (
    RunScheduledGenerationUseCase,
)
from rulebook_engine.config.settings import Settings, get_settings
from rulebook_engine.infrastructure.database.session import get_sessionmaker
from rulebook_engine.infrastructure.observability.metrics import PrometheusGenerationObserver

UowFactory = Callable[[], UnitOfWork]


def get_settings_dependency() -> Settings:
    """Return the cached application settings."""
    return get_settings()


def get_uow_factory() -> UowFactory:
    """Return a factory producing SQLAlchemy UnitOfWork instances."""
    session_factory = get_sessionmaker()
    return lambda: SqlAlchemyUnitOfWork(session_factory=session_factory)


def build_generation_use_case(
    settings: Settings, uow_factory: UowFactory
) -> RunRulebookTaskGenerationUseCase:
    """Build a single-tenant generation use case bound to a fresh UnitOfWork."""
    return RunRulebookTaskGenerationUseCase(
        uow=uow_factory(),
        observer=PrometheusGenerationObserver(),
        window_days=settings.generation_window_days,
        lookback_days=settings.generation_lookback_days,
        error_max_length=settings.generation_error_max_length,
    )


def build_scheduled_generation_use_case(
    settings: Settings, uow_factory: UowFactory
) -> RunScheduledGenerationUseCase:
    """Build the multi-tenant generation use case."""
    return RunScheduledGenerationUseCase(
        uow_factory=uow_factory,
        generation_factory=lambda: build_generation_use_case(settings, uow_factory),
        configured_tenant_ids=settings.rulebook_cron_tenant_ids,
    )


def build_init_use_case(uow_factory: UowFactory) -> InitRulebookForTenantUseCase:
    """Build the rulebook initialisation use case."""
    return InitRulebookForTenantUseCase(uow=uow_factory())


def build_upsert_rule_use_case(uow_factory: UowFactory) -> UpsertRulebookRuleUseCase:
    """Build the single-rule create/update use case."""
    return UpsertRulebookRuleUseCase(uow=uow_factory())


def build_set_rule_active_use_case(uow_factory: UowFactory) -> SetRulebookRuleActiveUseCase:
    return SetRulebookRuleActiveUseCase(uow=uow_factory())


def build_delete_rule_use_case(uow_factory: UowFactory) -> DeleteRulebookRuleUseCase:
    return DeleteRulebookRuleUseCase(uow=uow_factory())
