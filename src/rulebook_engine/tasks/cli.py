# src/rulebook_engine/tasks/cli.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Rulebook CLI: operational commands (generate, generate-all, init).

Commands:
    generate       Generate tasks for one tenant from its active rulebook.
    generate-all   Generate for the configured tenant list or every active tenant.
    init           Seed the default rulebook into a tenant.

Every command prints its JSON summary on stdout. Domain errors print an error
envelope on stderr and exit non-zero (2 for an invalid window, 1 otherwise).

Environment:
    DATABASE_URL               Async SQLAlchemy URL.
    RULEBOOK_CRON_TENANT_IDS   Comma-separated tenants for ``generate-all``.
    RULEBOOK_WINDOW_DAYS       Default window length (days).
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import TypeVar

import typer
from pydantic import BaseModel

from rulebook_engine.application.schemas.dto.rulebook import (
    InitRulebookRequestDTO,
    RunRulebookGenerationRequestDTO,
    ScheduledGenerationRequestDTO,
)
from rulebook_engine.config.settings import Settings, get_settings
from rulebook_engine.dependencies.rulebook import (
    UowFactory,
    build_generation_use_case,
    build_init_use_case,
    build_scheduled_generation_use_case,
    get_uow_factory,
)
from rulebook_engine.domain.exceptions import DomainError, GenerationWindowError
from rulebook_engine.infrastructure.database.session import dispose_engine
from rulebook_engine.infrastructure.http.errors import error_envelope
from rulebook_engine.infrastructure.logging.logger import configure_root_logging, get_json_logger

configure_root_logging()
log = get_json_logger(__name__)

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Compliance rulebook engine.")

TModel = TypeVar("TModel", bound=BaseModel)

_DATE_FORMATS = ["%Y-%m-%d"]


def _settings() -> Settings:
    return get_settings()


def _uow_factory() -> UowFactory:
    return get_uow_factory()


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _run(coro_factory: Callable[[], Awaitable[TModel]]) -> None:
    """Run a use-case coroutine, print its JSON result and map errors to exit codes."""

    async def _main() -> TModel:
        try:
            return await coro_factory()
        finally:
            await dispose_engine()

    try:
        result = asyncio.run(_main())
    except DomainError as exc:
        log.error("rulebook.cli.failed", extra={"code": exc.code, "error": exc.message})
        exit_code = 2 if isinstance(exc, GenerationWindowError) else 1
        payload = error_envelope(
            code=exc.code,
            http_status=422 if exit_code == 2 else 500,
            message=exc.message,
            details=exc.details or None,
        )
        typer.echo(json.dumps(payload, default=str), err=True)
        raise typer.Exit(code=exit_code) from exc

    typer.echo(result.model_dump_json(indent=2))


@app.command("generate")
def generate(
    tenant_id: str = typer.Option(..., "--tenant-id", help="Tenant to generate for."),  # noqa: B008
    actor_profile_id: str | None = typer.Option(  # noqa: B008
        None, "--actor-profile-id", help="Profile recorded as task author and audit actor."
    ),
    from_date: datetime | None = typer.Option(  # noqa: B008
        None, "--from-date", formats=_DATE_FORMATS, help="Window start (YYYY-MM-DD)."
    ),
    to_date: datetime | None = typer.Option(  # noqa: B008
        None, "--to-date", formats=_DATE_FORMATS, help="Window end (YYYY-MM-DD)."
    ),
    holidays: list[datetime] | None = typer.Option(  # noqa: B008
        None, "--holiday", formats=_DATE_FORMATS, help="Extra non-business day (repeatable)."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Evaluate without writing."),  # noqa: B008
    force_retry: bool = typer.Option(  # noqa: B008
        False, "--force-retry", help="Retry ledger rows that never got a task."
    ),
) -> None:
    """Generate tasks for one tenant."""
    settings = _settings()
    uow_factory = _uow_factory()
    req = RunRulebookGenerationRequestDTO(
        tenant_id=tenant_id,
        actor_profile_id=actor_profile_id,
        from_date=_as_date(from_date),
        to_date=_as_date(to_date),
        holidays=[h.date() for h in holidays or []],
        dry_run=dry_run,
        force_retry_without_linked_task=force_retry,
    )
    _run(lambda: build_generation_use_case(settings, uow_factory).execute(req))


@app.command("generate-all")
def generate_all(
    from_date: datetime | None = typer.Option(  # noqa: B008
        None, "--from-date", formats=_DATE_FORMATS, help="Window start (YYYY-MM-DD)."
    ),
    to_date: datetime | None = typer.Option(  # noqa: B008
        None, "--to-date", formats=_DATE_FORMATS, help="Window end (YYYY-MM-DD)."
    ),
    holidays: list[datetime] | None = typer.Option(  # noqa: B008
        None, "--holiday", formats=_DATE_FORMATS, help="Extra non-business day (repeatable)."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Evaluate without writing."),  # noqa: B008
    force_retry: bool = typer.Option(  # noqa: B008
        False, "--force-retry", help="Retry ledger rows that never got a task."
    ),
) -> None:
    """Generate tasks for the configured tenants, or every active tenant."""
    settings = _settings()
    uow_factory = _uow_factory()
    req = ScheduledGenerationRequestDTO(
        from_date=_as_date(from_date),
        to_date=_as_date(to_date),
        holidays=[h.date() for h in holidays or []],
        dry_run=dry_run,
        force_retry_without_linked_task=force_retry,
    )
    _run(lambda: build_scheduled_generation_use_case(settings, uow_factory).execute(req))


@app.command("init")
def init(
    tenant_id: str = typer.Option(..., "--tenant-id", help="Tenant to seed."),  # noqa: B008
    actor_profile_id: str | None = typer.Option(  # noqa: B008
        None, "--actor-profile-id", help="Profile recorded as creator."
    ),
    version_code: str | None = typer.Option(  # noqa: B008
        None, "--version-code", help="Version code (default: built-in catalog version)."
    ),
    activate: bool = typer.Option(  # noqa: B008
        True, "--activate/--no-activate", help="Make the version the only active one."
    ),
    replace_rules: bool = typer.Option(  # noqa: B008
        False, "--replace-rules", help="Delete the version's rules before seeding."
    ),
) -> None:
    """Seed the default rulebook into a tenant."""
    uow_factory = _uow_factory()
    req = InitRulebookRequestDTO(
        tenant_id=tenant_id,
        actor_profile_id=actor_profile_id,
        version_code=version_code,
        activate_version=activate,
        replace_rules=replace_rules,
    )
    _run(lambda: build_init_use_case(uow_factory).execute(req))


if __name__ == "__main__":  # pragma: no cover
    app()
