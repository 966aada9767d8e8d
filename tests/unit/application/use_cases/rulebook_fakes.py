# tests/unit/application/use_cases/rulebook_fakes.py
"""In-memory repositories and UnitOfWork for rulebook use case tests.

Writes apply immediately; ``commit``/``rollback`` are only counted. That is
enough for the use cases, which never rely on rolling back a write they
already committed.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from types import TracebackType
from typing import Any
from uuid import uuid4

from rulebook_engine.domain.entities.generation import GenerationCandidate, GenerationRecord
from rulebook_engine.domain.entities.practice import (
    ClientAssignment,
    ClientRecord,
    StaffProfile,
)
from rulebook_engine.domain.entities.rulebook import (
    NewRulebookRule,
    RuleOverride,
    RulebookRule,
    RulebookVersion,
)
from rulebook_engine.domain.enums.rulebook import GenerationStatus
from rulebook_engine.domain.exceptions.rulebook import (
    GenerationRecordConflictError,
    TaskCreationError,
)
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

TENANT_ID = "tenant-1"
VERSION_ID = "version-1"


def _stored_rule(
    rule_id: str, tenant_id: str, version_id: str, rule: NewRulebookRule
) -> RulebookRule:
    return RulebookRule(
        id=rule_id,
        tenant_id=tenant_id,
        version_id=version_id,
        code=rule.code,
        title=rule.title,
        is_active=rule.is_active,
        sort_order=rule.sort_order,
        legal_basis=tuple(rule.legal_basis),
        match_condition=dict(rule.match_condition),
        recurrence=dict(rule.recurrence),
        due_rule=dict(rule.due_rule),
        task_template=dict(rule.task_template),
    )


class FakeRulebookRepository:
    def __init__(self) -> None:
        self.versions: dict[str, RulebookVersion] = {}
        self.rules: dict[str, RulebookRule] = {}
        self.overrides: list[RuleOverride] = []
        self.fail_on: set[str] = set()
        self.deleted_versions: list[str] = []

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    async def get_active_version(self, tenant_id: str) -> RulebookVersion | None:
        self._maybe_fail("get_active_version")
        return next(
            (v for v in self.versions.values() if v.tenant_id == tenant_id and v.is_active), None
        )

    async def get_version_by_code(self, tenant_id: str, code: str) -> RulebookVersion | None:
        self._maybe_fail("get_version_by_code")
        return next(
            (v for v in self.versions.values() if v.tenant_id == tenant_id and v.code == code),
            None,
        )

    async def create_version(
        self,
        *,
        tenant_id: str,
        code: str,
        name: str,
        description: str | None,
        effective_from: date,
        created_by: str | None = None,
    ) -> RulebookVersion:
        version = RulebookVersion(
            id=str(uuid4()),
            tenant_id=tenant_id,
            code=code,
            name=name,
            is_active=False,
            effective_from=effective_from,
            description=description,
        )
        self.versions[version.id] = version
        return version

    async def activate_version(self, tenant_id: str, version_id: str) -> None:
        self._maybe_fail("activate_version")
        for vid, version in list(self.versions.items()):
            if version.tenant_id == tenant_id:
                self.versions[vid] = replace(version, is_active=vid == version_id)

    async def list_active_rules(self, tenant_id: str, version_id: str) -> Sequence[RulebookRule]:
        self._maybe_fail("list_active_rules")
        rules = [
            r
            for r in self.rules.values()
            if r.tenant_id == tenant_id and r.version_id == version_id and r.is_active
        ]
        return sorted(rules, key=lambda r: r.sort_order)

    async def delete_rules(self, tenant_id: str, version_id: str) -> int:
        self.deleted_versions.append(version_id)
        doomed = [k for k, r in self.rules.items() if r.version_id == version_id]
        for key in doomed:
            del self.rules[key]
        return len(doomed)

    async def upsert_rules(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rules: Sequence[NewRulebookRule],
        created_by: str | None = None,
    ) -> int:
        self._maybe_fail("upsert_rules")
        by_code = {r.code: k for k, r in self.rules.items() if r.version_id == version_id}
        for rule in rules:
            key = by_code.get(rule.code, str(uuid4()))
            self.rules[key] = _stored_rule(key, tenant_id, version_id, rule)
        return len(rules)

    def _rule_in(self, tenant_id: str, version_id: str, rule_id: str) -> RulebookRule | None:
        rule = self.rules.get(rule_id)
        if rule is None or rule.tenant_id != tenant_id or rule.version_id != version_id:
            return None
        return rule

    async def get_rule(
        self, tenant_id: str, version_id: str, rule_id: str
    ) -> RulebookRule | None:
        return self._rule_in(tenant_id, version_id, rule_id)

    async def get_rule_by_code(
        self, tenant_id: str, version_id: str, code: str
    ) -> RulebookRule | None:
        return next(
            (
                r
                for r in self.rules.values()
                if r.tenant_id == tenant_id and r.version_id == version_id and r.code == code
            ),
            None,
        )

    async def create_rule(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rule: NewRulebookRule,
        created_by: str | None = None,
    ) -> RulebookRule:
        self._maybe_fail("create_rule")
        stored = _stored_rule(str(uuid4()), tenant_id, version_id, rule)
        self.rules[stored.id] = stored
        return stored

    async def update_rule(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rule_id: str,
        rule: NewRulebookRule,
    ) -> RulebookRule | None:
        if self._rule_in(tenant_id, version_id, rule_id) is None:
            return None
        stored = _stored_rule(rule_id, tenant_id, version_id, rule)
        self.rules[rule_id] = stored
        return stored

    async def set_rule_active(
        self, tenant_id: str, version_id: str, rule_id: str, is_active: bool
    ) -> bool:
        rule = self._rule_in(tenant_id, version_id, rule_id)
        if rule is None:
            return False
        self.rules[rule_id] = replace(rule, is_active=is_active)
        return True

    async def delete_rule(self, tenant_id: str, version_id: str, rule_id: str) -> bool:
        if self._rule_in(tenant_id, version_id, rule_id) is None:
            return False
        del self.rules[rule_id]
        return True

    async def list_overrides(self, tenant_id: str) -> Sequence[RuleOverride]:
        self._maybe_fail("list_overrides")
        return [o for o in self.overrides if o.tenant_id == tenant_id]


class FakePracticeDirectoryRepository:
    def __init__(self) -> None:
        self.tenant_ids: list[str] = []
        self.clients: list[ClientRecord] = []
        self.assignments: list[ClientAssignment] = []
        self.staff: list[StaffProfile] = []
        self.fail_on: set[str] = set()

    async def list_active_tenant_ids(self) -> Sequence[str]:
        return list(self.tenant_ids)

    async def list_clients(self, tenant_id: str) -> Sequence[ClientRecord]:
        if "list_clients" in self.fail_on:
            raise RuntimeError("clients table unavailable")
        return list(self.clients)

    async def list_assignments(self, tenant_id: str) -> Sequence[ClientAssignment]:
        return list(self.assignments)

    async def list_active_staff(self, tenant_id: str) -> Sequence[StaffProfile]:
        return [s for s in self.staff if s.is_active]


class FakeGenerationLedgerRepository:
    def __init__(self) -> None:
        self.records: dict[tuple[str, str, str, str], GenerationRecord] = {}
        # Simulates a concurrent run: on the next create, this record is
        # stored first and the insert reports a conflict.
        self.concurrent_winner: GenerationRecord | None = None

    def _key(self, tenant_id: str, client_id: str, rule_id: str, period_key: str) -> tuple[str, ...]:
        return (tenant_id, client_id, rule_id, period_key)

    async def get(
        self, *, tenant_id: str, client_id: str, rule_id: str, period_key: str
    ) -> GenerationRecord | None:
        return self.records.get(self._key(tenant_id, client_id, rule_id, period_key))  # type: ignore[arg-type]

    async def create(self, *, tenant_id: str, candidate: GenerationCandidate) -> GenerationRecord:
        key = self._key(tenant_id, candidate.client_id, candidate.rule_id, candidate.period_key)
        if self.concurrent_winner is not None:
            self.records[key] = self.concurrent_winner  # type: ignore[index]
            self.concurrent_winner = None
        if key in self.records:
            raise GenerationRecordConflictError("duplicate key value violates unique constraint")
        record = GenerationRecord(
            id=str(uuid4()),
            tenant_id=tenant_id,
            client_id=candidate.client_id,
            rule_id=candidate.rule_id,
            period_key=candidate.period_key,
            scheduled_due_date=candidate.due_date,
            status=GenerationStatus.CREATED,
        )
        self.records[key] = record  # type: ignore[index]
        return record

    def _update(self, generation_id: str, **changes: Any) -> None:
        for key, record in self.records.items():
            if record.id == generation_id:
                self.records[key] = replace(record, **changes)

    async def link_task(self, generation_id: str, task_id: str) -> None:
        self._update(
            generation_id,
            generated_task_id=task_id,
            status=GenerationStatus.LINKED,
            error_message=None,
        )

    async def mark_error(self, generation_id: str, message: str) -> None:
        self._update(generation_id, status=GenerationStatus.ERROR, error_message=message)

    def by_status(self, status: GenerationStatus) -> list[GenerationRecord]:
        return [r for r in self.records.values() if r.status is status]


@dataclass
class StoredTask:
    id: str
    tenant_id: str
    created_by: str
    candidate: GenerationCandidate


class FakeTaskRepository:
    def __init__(self) -> None:
        self.tasks: list[StoredTask] = []
        self.fail_message: str | None = None

    async def find_matching_task(self, tenant_id: str, candidate: GenerationCandidate) -> str | None:
        for task in self.tasks:
            c = task.candidate
            if (
                task.tenant_id == tenant_id
                and c.client_id == candidate.client_id
                and c.title == candidate.title
                and c.due_date == candidate.due_date
                and c.period_key == candidate.period_key
            ):
                return task.id
        return None

    async def create_task(
        self, *, tenant_id: str, created_by: str, candidate: GenerationCandidate
    ) -> str:
        if self.fail_message is not None:
            raise TaskCreationError(self.fail_message)
        task = StoredTask(
            id=str(uuid4()), tenant_id=tenant_id, created_by=created_by, candidate=candidate
        )
        self.tasks.append(task)
        return task.id


class FakeAuditLogRepository:
    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []

    async def append(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        entity: str,
        entity_id: str,
        action: str,
        meta: Mapping[str, Any],
    ) -> None:
        self.entries.append(
            {
                "tenant_id": tenant_id,
                "actor_id": actor_id,
                "entity": entity,
                "entity_id": entity_id,
                "action": action,
                "meta": dict(meta),
            }
        )


class FakeGenerationRunRepository:
    def __init__(self) -> None:
        self.runs: dict[str, dict[str, Any]] = {}

    async def start_run(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        from_date: date,
        to_date: date,
        dry_run: bool,
    ) -> str:
        run_id = str(uuid4())
        self.runs[run_id] = {
            "tenant_id": tenant_id,
            "actor_id": actor_id,
            "from_date": from_date,
            "to_date": to_date,
            "status": "running",
            "summary": None,
            "error_message": None,
        }
        return run_id

    async def complete_run(self, run_id: str, summary: Mapping[str, Any]) -> None:
        self.runs[run_id].update(status="completed", summary=dict(summary))

    async def fail_run(self, run_id: str, error_message: str) -> None:
        self.runs[run_id].update(status="failed", error_message=error_message)


@dataclass
class FakeWorld:
    """All fake repositories of one tenant database."""

    rulebook: FakeRulebookRepository = field(default_factory=FakeRulebookRepository)
    directory: FakePracticeDirectoryRepository = field(
        default_factory=FakePracticeDirectoryRepository
    )
    ledger: FakeGenerationLedgerRepository = field(default_factory=FakeGenerationLedgerRepository)
    tasks: FakeTaskRepository = field(default_factory=FakeTaskRepository)
    audit: FakeAuditLogRepository = field(default_factory=FakeAuditLogRepository)
    runs: FakeGenerationRunRepository = field(default_factory=FakeGenerationRunRepository)
    uows: list[FakeUnitOfWork] = field(default_factory=list)

    def uow(self) -> FakeUnitOfWork:
        uow = FakeUnitOfWork(
            {
                RulebookRepository: self.rulebook,
                PracticeDirectoryRepository: self.directory,
                GenerationLedgerRepository: self.ledger,
                TaskRepository: self.tasks,
                AuditLogRepository: self.audit,
                GenerationRunRepository: self.runs,
            }
        )
        self.uows.append(uow)
        return uow

    def add_active_version(self, *, code: str = "ua-core-2026") -> RulebookVersion:
        version = RulebookVersion(
            id=VERSION_ID,
            tenant_id=TENANT_ID,
            code=code,
            name="Core",
            is_active=True,
            effective_from=date(2026, 1, 1),
        )
        self.rulebook.versions[version.id] = version
        return version

    def add_rule(self, code: str, **values: Any) -> RulebookRule:
        defaults: dict[str, Any] = {
            "id": f"rule-{code}",
            "tenant_id": TENANT_ID,
            "version_id": VERSION_ID,
            "code": code,
            "title": code,
            "match_condition": None,
            "recurrence": {"kind": "monthly"},
            "due_rule": {
                "kind": "day_of_month",
                "day": 20,
                "shift_if_non_business_day": "prev_business_day",
            },
            "task_template": {"title": f"Task {code}", "task_type": "payment"},
        }
        defaults.update(values)
        rule = RulebookRule(**defaults)
        self.rulebook.rules[rule.id] = rule
        return rule

    def add_client(self, client_id: str, **values: Any) -> ClientRecord:
        defaults: dict[str, Any] = {
            "id": client_id,
            "client_type": "FOP",
            "status": "active",
            "tax_system": "single_tax_group1",
        }
        defaults.update(values)
        client = ClientRecord(**defaults)
        self.directory.clients.append(client)
        return client


class FakeUnitOfWork:
    def __init__(self, repos: Mapping[type[Any], Any]) -> None:
        self._repos = dict(repos)
        self.entered = 0
        self.commits = 0
        self.rollbacks = 0

    async def __aenter__(self) -> FakeUnitOfWork:
        self.entered += 1
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    def get_repository(self, repo_type: type[Any]) -> Any:
        return self._repos[repo_type]


class RecordingObserver:
    def __init__(self) -> None:
        self.candidates: list[str] = []
        self.runs: list[str] = []

    def candidate(self, result: str) -> None:
        self.candidates.append(result)

    def run_finished(self, outcome: str, duration_seconds: float) -> None:
        assert duration_seconds >= 0
        self.runs.append(outcome)
