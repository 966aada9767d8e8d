# src/rulebook_engine/application/use_cases/rulebook/run_rulebook_task_generation.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Use case: Generate compliance tasks for a tenant from its active rulebook.

Scope:
    * Load the tenant's active rulebook version, rules, clients, overrides,
      accountant assignments and staff.
    * For every (client, rule) pair: merge overrides, evaluate the match
      condition, resolve an assignee, enumerate periods and resolve due
      dates inside the requested window.
    * Materialise every in-window occurrence into exactly one task through
      the generation ledger.

Behavior:
    * Idempotent with respect to (tenant, client, rule, period key). A rerun
      over the same window creates nothing new.
    * Concurrent runs are resolved by the ledger's unique constraint:
      insert, and on conflict re-read the winning row.
    * Every write is committed on its own. An interrupted run leaves
      ``created``/``linked``/``error`` rows that the next run continues from.
    * Candidate-level failures are recorded on the ledger row and in the
      summary; only load failures abort the run (``RulebookLoadError``).
    * Dry runs evaluate and count identically but write nothing.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any, Protocol, cast
from uuid import uuid4

from rulebook_engine.application.schemas.dto.rulebook import (
    ActiveVersionDTO,
    GenerationErrorDTO,
    GenerationSummaryDTO,
    RunRulebookGenerationRequestDTO,
)
from rulebook_engine.application.uow import UnitOfWork
from rulebook_engine.domain.entities.generation import GenerationCandidate, GenerationRecord
from rulebook_engine.domain.entities.practice import ClientAssignment, ClientProfile, ClientRecord
from rulebook_engine.domain.entities.rule_config import DueRule, Recurrence, TaskTemplate
from rulebook_engine.domain.entities.rulebook import RuleOverride, RulebookRule, RulebookVersion
from rulebook_engine.domain.exceptions.rulebook import (
    GenerationWindowError,
    RulebookLoadError,
    TaskCreationError,
)
from rulebook_engine.domain.interfaces.repositories.audit_log_repository import (
    AuditLogRepository as AuditLogRepositoryPort,
)
from rulebook_engine.domain.interfaces.repositories.generation_ledger_repository import (
    GenerationLedgerRepository as GenerationLedgerRepositoryPort,
)
from rulebook_engine.domain.interfaces.repositories.generation_run_repository import (
    GenerationRunRepository as GenerationRunRepositoryPort,
)
from rulebook_engine.domain.interfaces.repositories.practice_directory_repository import (
    PracticeDirectoryRepository as PracticeDirectoryRepositoryPort,
)
from rulebook_engine.domain.interfaces.repositories.rulebook_repository import (
    RulebookRepository as RulebookRepositoryPort,
)
from rulebook_engine.domain.interfaces.repositories.task_repository import (
    TaskRepository as TaskRepositoryPort,
)
from rulebook_engine.domain.services.assignee_resolver import (
    StaffFallbacks,
    group_assignments_by_client,
    resolve_assignee_id,
    resolve_created_by,
)
from rulebook_engine.domain.services.candidate_builder import build_candidate
from rulebook_engine.domain.services.client_profile_normalizer import normalize_client_profile
from rulebook_engine.domain.services.condition_evaluator import evaluate_condition
from rulebook_engine.domain.services.due_date_resolver import (
    DueDateContext,
    resolve_due_date_for_period,
)
from rulebook_engine.domain.services.recurrence_enumerator import enumerate_periods_in_range
from rulebook_engine.domain.services.rule_override_merger import merge_rule_with_override

logger = logging.getLogger(__name__)

AUDIT_ENTITY = "rulebook_generation"
AUDIT_ACTION_RUN = "rulebook_generation_run"
AUDIT_ACTION_FAILED = "rulebook_generation_failed"

DEFAULT_WINDOW_DAYS = 45
DEFAULT_LOOKBACK_DAYS = 370
DEFAULT_ERROR_MAX_LENGTH = 1200

NO_CREATED_BY_MESSAGE = "No available created_by profile for generated tasks"


class GenerationObserver(Protocol):
    """Hook receiving run and candidate outcomes (metrics, tracing)."""

    def candidate(self, result: str) -> None:
        """Record one candidate outcome."""

    def run_finished(self, outcome: str, duration_seconds: float) -> None:
        """Record the outcome and wall time of a run."""


class _NullObserver:
    def candidate(self, result: str) -> None:
        return None

    def run_finished(self, outcome: str, duration_seconds: float) -> None:
        return None


@dataclass(slots=True)
class _Counters:
    processed_clients: int = 0
    evaluated_rules: int = 0
    matched_candidates: int = 0
    created_tasks: int = 0
    linked_existing_tasks: int = 0
    skipped_already_generated: int = 0
    skipped_by_condition: int = 0
    skipped_no_assignee: int = 0
    errors: list[GenerationErrorDTO] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _RunInputs:
    rules: Sequence[RulebookRule]
    clients: Sequence[ClientRecord]
    overrides: Mapping[tuple[str, str], RuleOverride]
    assignments_by_client: Mapping[str, Sequence[ClientAssignment]]
    fallbacks: StaffFallbacks


@dataclass(frozen=True, slots=True)
class _Repos:
    rulebook: RulebookRepositoryPort
    directory: PracticeDirectoryRepositoryPort
    ledger: GenerationLedgerRepositoryPort
    tasks: TaskRepositoryPort
    audit: AuditLogRepositoryPort
    runs: GenerationRunRepositoryPort


class RunRulebookTaskGenerationUseCase:
    """Generate tasks for one tenant from its active rulebook.

    Args:
        uow: Application UnitOfWork used to resolve repositories and commit writes.
        observer: Optional outcome hook. Defaults to a no-op.
        window_days: Window length used when the request has no ``to_date``.
        lookback_days: How far before ``from_date`` periods are enumerated, so
            that long periods whose due date falls in the window are found.
        error_max_length: Maximum stored length of candidate error messages.
        today: Clock returning the current UTC date (injectable for tests).

    Raises:
        GenerationWindowError: When ``to_date`` precedes ``from_date``.
        RulebookLoadError: When run inputs cannot be loaded.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        observer: GenerationObserver | None = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        error_max_length: int = DEFAULT_ERROR_MAX_LENGTH,
        today: Callable[[], date] | None = None,
    ) -> None:
        """Initialize the use case."""
        self._uow = uow
        self._observer: GenerationObserver = observer or _NullObserver()
        self._window_days = window_days
        self._lookback_days = lookback_days
        self._error_max_length = error_max_length
        self._today = today or (lambda: datetime.now(tz=UTC).date())

    async def execute(self, req: RunRulebookGenerationRequestDTO) -> GenerationSummaryDTO:
        """Run generation for ``req.tenant_id``.

        Args:
            req: Run parameters.

        Returns:
            GenerationSummaryDTO: Counters and candidate-level errors.

        Raises:
            GenerationWindowError: When the window is invalid (before any I/O).
            RulebookLoadError: When loading the run inputs fails.
        """
        from_date, to_date = self._pick_window(req)
        started = time.perf_counter()
        counters = _Counters()

        logger.info(
            "rulebook.generation.start",
            extra={
                "tenant_id": req.tenant_id,
                "from_date": from_date.isoformat(),
                "to_date": to_date.isoformat(),
                "dry_run": req.dry_run,
            },
        )

        async with self._uow as tx:
            repos = _resolve_repos(tx)
            run_id: str | None = None

            try:
                if not req.dry_run:
                    run_id = await repos.runs.start_run(
                        tenant_id=req.tenant_id,
                        actor_id=req.actor_profile_id,
                        from_date=from_date,
                        to_date=to_date,
                        dry_run=req.dry_run,
                    )
                    await tx.commit()
                version = await repos.rulebook.get_active_version(req.tenant_id)
                inputs = await _load_inputs(repos, req.tenant_id, version) if version else None
            except Exception as exc:  # noqa: BLE001
                await tx.rollback()
                await self._fail_run(tx, repos, req, run_id, from_date, to_date, exc)
                self._observer.run_finished("failed", time.perf_counter() - started)
                raise RulebookLoadError(
                    "Failed to load rulebook generation inputs.",
                    details={"tenant_id": req.tenant_id, "error": _error_text(exc)},
                ) from exc

            if version is None or inputs is None:
                summary = self._build_summary(req, from_date, to_date, None, counters)
                if run_id is not None:
                    await self._complete_run(tx, repos, run_id, summary)
                logger.info(
                    "rulebook.generation.no_active_version",
                    extra={"tenant_id": req.tenant_id},
                )
                self._observer.run_finished("no_active_version", time.perf_counter() - started)
                return summary

            await self._generate(tx, repos, req, inputs, from_date, to_date, counters)

            summary = self._build_summary(req, from_date, to_date, version, counters)
            if not req.dry_run:
                await self._write_audit(tx, repos, req, summary, version)
                if run_id is not None:
                    await self._complete_run(tx, repos, run_id, summary)

        self._observer.run_finished(
            "dry_run" if req.dry_run else "completed", time.perf_counter() - started
        )
        logger.info(
            "rulebook.generation.success",
            extra={
                "tenant_id": req.tenant_id,
                "active_version": version.code,
                "matched_candidates": summary.matched_candidates,
                "created_tasks": summary.created_tasks,
                "linked_existing_tasks": summary.linked_existing_tasks,
                "errors_count": len(summary.errors),
            },
        )
        return summary

    # ------------------------------------------------------------------
    # Candidate loop
    # ------------------------------------------------------------------

    async def _generate(
        self,
        tx: UnitOfWork,
        repos: _Repos,
        req: RunRulebookGenerationRequestDTO,
        inputs: _RunInputs,
        from_date: date,
        to_date: date,
        counters: _Counters,
    ) -> None:
        scan_start = from_date - timedelta(days=self._lookback_days)
        holidays = frozenset(req.holidays)
        created_by = resolve_created_by(req.actor_profile_id, inputs.fallbacks)

        for client in inputs.clients:
            profile = normalize_client_profile(client)
            profile_mapping = profile.as_mapping()
            counters.processed_clients += 1
            context = DueDateContext(
                holidays=holidays,
                payroll_advance_day=profile.payroll_advance_day,
                payroll_final_day=profile.payroll_final_day,
            )

            for rule in inputs.rules:
                counters.evaluated_rules += 1
                override = inputs.overrides.get((client.id, rule.id))
                effective = merge_rule_with_override(rule, override)
                parts = effective.actionable_parts()
                if parts is None:
                    continue
                recurrence, due_rule, template = parts

                if not evaluate_condition(effective.condition, profile_mapping):
                    counters.skipped_by_condition += 1
                    self._observer.candidate("skipped_by_condition")
                    continue

                assignee_id = resolve_assignee_id(
                    client.id, template, inputs.assignments_by_client, inputs.fallbacks
                )
                if assignee_id is None:
                    counters.skipped_no_assignee += 1
                    self._observer.candidate("skipped_no_assignee")
                    continue

                try:
                    candidates = _in_window_candidates(
                        rule=rule,
                        profile=profile,
                        recurrence=recurrence,
                        due_rule=due_rule,
                        template=template,
                        context=context,
                        assignee_id=assignee_id,
                        scan_start=scan_start,
                        from_date=from_date,
                        to_date=to_date,
                    )
                except (ValueError, OverflowError) as exc:
                    # Configuration that parses but cannot be placed on the calendar.
                    logger.warning(
                        "rulebook.generation.rule_unresolvable",
                        extra={
                            "tenant_id": req.tenant_id,
                            "client_id": client.id,
                            "rule_code": rule.code,
                            "error": _error_text(exc),
                        },
                    )
                    continue

                for candidate in candidates:
                    counters.matched_candidates += 1

                    if req.dry_run:
                        self._observer.candidate("dry_run")
                        continue

                    result = await self._materialize(
                        tx, repos, req, candidate, created_by, counters
                    )
                    self._observer.candidate(result)

    async def _materialize(
        self,
        tx: UnitOfWork,
        repos: _Repos,
        req: RunRulebookGenerationRequestDTO,
        candidate: GenerationCandidate,
        created_by: str | None,
        counters: _Counters,
    ) -> str:
        """Drive one candidate through the ledger and return its outcome label."""
        try:
            record = await _get_record(repos, req.tenant_id, candidate)
        except Exception as exc:  # noqa: BLE001
            await tx.rollback()
            self._append_error(counters, candidate, exc)
            return "error"

        if record is not None and record.is_linked:
            counters.skipped_already_generated += 1
            return "already_generated"

        if record is None:
            try:
                record = await repos.ledger.create(tenant_id=req.tenant_id, candidate=candidate)
                await tx.commit()
            except Exception as insert_error:  # noqa: BLE001
                # Most likely a concurrent run won the unique key; re-read its row.
                await tx.rollback()
                try:
                    record = await _get_record(repos, req.tenant_id, candidate)
                except Exception as exc:  # noqa: BLE001
                    await tx.rollback()
                    self._append_error(counters, candidate, exc)
                    return "error"
                if record is None:
                    self._append_error(counters, candidate, insert_error)
                    return "error"
                if record.is_linked:
                    counters.skipped_already_generated += 1
                    return "already_generated"
        elif not req.force_retry_without_linked_task:
            counters.skipped_already_generated += 1
            return "already_generated"

        try:
            existing_task_id = await repos.tasks.find_matching_task(req.tenant_id, candidate)
            if existing_task_id is not None:
                await repos.ledger.link_task(record.id, existing_task_id)
                await tx.commit()
                counters.linked_existing_tasks += 1
                return "linked"

            if created_by is None:
                raise TaskCreationError(NO_CREATED_BY_MESSAGE)

            task_id = await repos.tasks.create_task(
                tenant_id=req.tenant_id, created_by=created_by, candidate=candidate
            )
            await tx.commit()
            await repos.ledger.link_task(record.id, task_id)
            await tx.commit()
            counters.created_tasks += 1
            return "created"
        except Exception as exc:  # noqa: BLE001
            await tx.rollback()
            message = self._append_error(counters, candidate, exc)
            await self._mark_error(tx, repos, record, message)
            return "error"

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _pick_window(self, req: RunRulebookGenerationRequestDTO) -> tuple[date, date]:
        from_date = req.from_date or self._today()
        to_date = req.to_date or from_date + timedelta(days=self._window_days)
        if to_date < from_date:
            raise GenerationWindowError(
                "Generation window is invalid: to_date must be >= from_date.",
                details={"from_date": from_date.isoformat(), "to_date": to_date.isoformat()},
            )
        return from_date, to_date

    def _truncate(self, message: str) -> str:
        return message[: self._error_max_length]

    def _append_error(
        self, counters: _Counters, candidate: GenerationCandidate, exc: BaseException
    ) -> str:
        message = self._truncate(_error_text(exc))
        counters.errors.append(
            GenerationErrorDTO(
                client_id=candidate.client_id,
                rule_code=candidate.rule_code,
                period_key=candidate.period_key,
                message=message,
            )
        )
        logger.warning(
            "rulebook.generation.candidate_failed",
            extra={
                "client_id": candidate.client_id,
                "rule_code": candidate.rule_code,
                "period_key": candidate.period_key,
                "error": message,
            },
        )
        return message

    async def _mark_error(
        self, tx: UnitOfWork, repos: _Repos, record: GenerationRecord, message: str
    ) -> None:
        try:
            await repos.ledger.mark_error(record.id, message)
            await tx.commit()
        except Exception:
            await tx.rollback()
            logger.exception(
                "rulebook.generation.mark_error_failed",
                extra={"generation_id": record.id},
            )

    def _build_summary(
        self,
        req: RunRulebookGenerationRequestDTO,
        from_date: date,
        to_date: date,
        version: RulebookVersion | None,
        counters: _Counters,
    ) -> GenerationSummaryDTO:
        return GenerationSummaryDTO(
            tenant_id=req.tenant_id,
            dry_run=req.dry_run,
            from_date=from_date,
            to_date=to_date,
            active_version=(
                ActiveVersionDTO(id=version.id, code=version.code) if version is not None else None
            ),
            processed_clients=counters.processed_clients,
            evaluated_rules=counters.evaluated_rules,
            matched_candidates=counters.matched_candidates,
            created_tasks=counters.created_tasks,
            linked_existing_tasks=counters.linked_existing_tasks,
            skipped_already_generated=counters.skipped_already_generated,
            skipped_by_condition=counters.skipped_by_condition,
            skipped_no_assignee=counters.skipped_no_assignee,
            errors=list(counters.errors),
        )

    async def _write_audit(
        self,
        tx: UnitOfWork,
        repos: _Repos,
        req: RunRulebookGenerationRequestDTO,
        summary: GenerationSummaryDTO,
        version: RulebookVersion,
    ) -> None:
        try:
            await repos.audit.append(
                tenant_id=req.tenant_id,
                actor_id=req.actor_profile_id,
                entity=AUDIT_ENTITY,
                entity_id=version.id,
                action=AUDIT_ACTION_RUN,
                meta=_audit_meta(summary),
            )
            await tx.commit()
        except Exception:
            await tx.rollback()
            logger.exception("rulebook.generation.audit_failed", extra={"tenant_id": req.tenant_id})

    async def _complete_run(
        self, tx: UnitOfWork, repos: _Repos, run_id: str, summary: GenerationSummaryDTO
    ) -> None:
        try:
            await repos.runs.complete_run(run_id, summary.model_dump(mode="json"))
            await tx.commit()
        except Exception:
            await tx.rollback()
            logger.exception("rulebook.generation.complete_run_failed", extra={"run_id": run_id})

    async def _fail_run(
        self,
        tx: UnitOfWork,
        repos: _Repos,
        req: RunRulebookGenerationRequestDTO,
        run_id: str | None,
        from_date: date,
        to_date: date,
        exc: BaseException,
    ) -> None:
        message = self._truncate(_error_text(exc))
        logger.error(
            "rulebook.generation.failed",
            extra={"tenant_id": req.tenant_id, "error": message},
            exc_info=exc,
        )
        if req.dry_run:
            return
        try:
            if run_id is not None:
                await repos.runs.fail_run(run_id, message)
            await repos.audit.append(
                tenant_id=req.tenant_id,
                actor_id=req.actor_profile_id,
                entity=AUDIT_ENTITY,
                entity_id=str(uuid4()),
                action=AUDIT_ACTION_FAILED,
                meta={
                    "from_date": from_date.isoformat(),
                    "to_date": to_date.isoformat(),
                    "error": message,
                },
            )
            await tx.commit()
        except Exception:
            await tx.rollback()
            logger.exception(
                "rulebook.generation.fail_run_failed", extra={"tenant_id": req.tenant_id}
            )


# ----------------------------------------------------------------------
# Module helpers
# ----------------------------------------------------------------------


def _error_text(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _in_window_candidates(
    *,
    rule: RulebookRule,
    profile: ClientProfile,
    recurrence: Recurrence,
    due_rule: DueRule,
    template: TaskTemplate,
    context: DueDateContext,
    assignee_id: str,
    scan_start: date,
    from_date: date,
    to_date: date,
) -> list[GenerationCandidate]:
    """Return the candidates of one (client, rule) whose due date lies in the window.

    Periods are enumerated from ``scan_start`` so that long periods ending
    before the window still surface when their due date falls inside it.

    Raises:
        ValueError | OverflowError: When a due date falls outside the calendar.
    """
    candidates: list[GenerationCandidate] = []
    for period in enumerate_periods_in_range(scan_start, to_date, recurrence):
        resolution = resolve_due_date_for_period(period, due_rule, context)
        if not from_date <= resolution.due_date <= to_date:
            continue
        candidates.append(
            build_candidate(
                rule=rule,
                profile=profile,
                recurrence=recurrence,
                due_rule=due_rule,
                template=template,
                resolution=resolution,
                assignee_id=assignee_id,
            )
        )
    return candidates


def _audit_meta(summary: GenerationSummaryDTO) -> dict[str, Any]:
    return {
        "from_date": summary.from_date.isoformat(),
        "to_date": summary.to_date.isoformat(),
        "active_version": (
            summary.active_version.model_dump() if summary.active_version is not None else None
        ),
        "processed_clients": summary.processed_clients,
        "evaluated_rules": summary.evaluated_rules,
        "matched_candidates": summary.matched_candidates,
        "created_tasks": summary.created_tasks,
        "linked_existing_tasks": summary.linked_existing_tasks,
        "skipped_already_generated": summary.skipped_already_generated,
        "skipped_by_condition": summary.skipped_by_condition,
        "skipped_no_assignee": summary.skipped_no_assignee,
        "errors_count": len(summary.errors),
    }


async def _get_record(
    repos: _Repos, tenant_id: str, candidate: GenerationCandidate
) -> GenerationRecord | None:
    return await repos.ledger.get(
        tenant_id=tenant_id,
        client_id=candidate.client_id,
        rule_id=candidate.rule_id,
        period_key=candidate.period_key,
    )


async def _load_inputs(repos: _Repos, tenant_id: str, version: RulebookVersion) -> _RunInputs:
    rules = await repos.rulebook.list_active_rules(tenant_id, version.id)
    clients = await repos.directory.list_clients(tenant_id)
    overrides = await repos.rulebook.list_overrides(tenant_id)
    assignments = await repos.directory.list_assignments(tenant_id)
    staff = await repos.directory.list_active_staff(tenant_id)
    return _RunInputs(
        rules=rules,
        clients=clients,
        overrides={(o.client_id, o.rule_id): o for o in overrides},
        assignments_by_client=group_assignments_by_client(assignments),
        fallbacks=StaffFallbacks.from_profiles(staff),
    )


def _resolve_repos(tx: Any) -> _Repos:
    return _Repos(
        rulebook=cast(RulebookRepositoryPort, tx.get_repository(RulebookRepositoryPort)),
        directory=cast(
            PracticeDirectoryRepositoryPort, tx.get_repository(PracticeDirectoryRepositoryPort)
        ),
        ledger=cast(
            GenerationLedgerRepositoryPort, tx.get_repository(GenerationLedgerRepositoryPort)
        ),
        tasks=cast(TaskRepositoryPort, tx.get_repository(TaskRepositoryPort)),
        audit=cast(AuditLogRepositoryPort, tx.get_repository(AuditLogRepositoryPort)),
        runs=cast(GenerationRunRepositoryPort, tx.get_repository(GenerationRunRepositoryPort)),
    )
