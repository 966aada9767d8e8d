# tests/unit/application/use_cases/test_run_rulebook_task_generation.py
from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from rulebook_engine.application.schemas.dto.rulebook import RunRulebookGenerationRequestDTO
from rulebook_engine.application.use_cases.rulebook import (
    run_rulebook_task_generation as generation_module,
)
from rulebook_engine.application.use_cases.rulebook.run_rulebook_task_generation import (
    AUDIT_ACTION_FAILED,
    AUDIT_ACTION_RUN,
    NO_CREATED_BY_MESSAGE,
    RunRulebookTaskGenerationUseCase,
)
from rulebook_engine.domain.entities.generation import GenerationRecord, PeriodWindow
from rulebook_engine.domain.entities.practice import ClientAssignment, StaffProfile
from rulebook_engine.domain.entities.rule_config import DueRule
from rulebook_engine.domain.entities.rulebook import RuleOverride
from rulebook_engine.domain.enums.rulebook import GenerationStatus
from rulebook_engine.domain.exceptions.rulebook import (
    GenerationWindowError,
    RulebookLoadError,
)

from rulebook_fakes import TENANT_ID, FakeWorld, RecordingObserver

JAN_1 = date(2026, 1, 1)
FEB_28 = date(2026, 2, 28)


def _use_case(world: FakeWorld, **kwargs: Any) -> RunRulebookTaskGenerationUseCase:
    return RunRulebookTaskGenerationUseCase(uow=world.uow(), **kwargs)


def _request(**overrides: Any) -> RunRulebookGenerationRequestDTO:
    values: dict[str, Any] = {
        "tenant_id": TENANT_ID,
        "actor_profile_id": "actor-1",
        "from_date": JAN_1,
        "to_date": FEB_28,
    }
    values.update(overrides)
    return RunRulebookGenerationRequestDTO(**values)


@pytest.fixture
def seeded(world: FakeWorld) -> FakeWorld:
    world.add_active_version()
    world.add_rule("monthly_payment")
    world.add_client("c-1")
    world.directory.assignments.append(ClientAssignment("c-1", "acc-1", is_primary=True))
    world.directory.staff.append(StaffProfile("admin-1", "admin"))
    return world


async def test_creates_one_task_per_in_window_occurrence(
    seeded: FakeWorld, observer: RecordingObserver
) -> None:
    summary = await _use_case(seeded, observer=observer).execute(_request())

    assert summary.active_version is not None
    assert summary.active_version.code == "ua-core-2026"
    assert summary.processed_clients == 1
    assert summary.evaluated_rules == 1
    assert summary.matched_candidates == 2
    assert summary.created_tasks == 2
    assert summary.errors == []

    # 2025-12-20 is a Saturday and shifts to the 19th, outside the window.
    due_dates = sorted(t.candidate.due_date for t in seeded.tasks.tasks)
    assert due_dates == [date(2026, 1, 20), date(2026, 2, 20)]
    assert {t.candidate.assignee_id for t in seeded.tasks.tasks} == {"acc-1"}
    assert {t.created_by for t in seeded.tasks.tasks} == {"actor-1"}
    assert len(seeded.ledger.by_status(GenerationStatus.LINKED)) == 2

    assert observer.candidates == ["created", "created"]
    assert observer.runs == ["completed"]


async def test_run_is_recorded_and_audited(seeded: FakeWorld) -> None:
    await _use_case(seeded).execute(_request())

    (run,) = seeded.runs.runs.values()
    assert run["status"] == "completed"
    assert run["actor_id"] == "actor-1"
    assert run["summary"]["created_tasks"] == 2

    (entry,) = seeded.audit.entries
    assert entry["action"] == AUDIT_ACTION_RUN
    assert entry["entity_id"] == "version-1"
    assert entry["meta"]["created_tasks"] == 2
    assert entry["meta"]["errors_count"] == 0
    assert entry["meta"]["active_version"] == {"id": "version-1", "code": "ua-core-2026"}


async def test_rerun_over_same_window_creates_nothing(seeded: FakeWorld) -> None:
    await _use_case(seeded).execute(_request())
    again = await _use_case(seeded).execute(_request())

    assert again.matched_candidates == 2
    assert again.created_tasks == 0
    assert again.skipped_already_generated == 2
    assert len(seeded.tasks.tasks) == 2


async def test_dry_run_counts_but_writes_nothing(
    seeded: FakeWorld, observer: RecordingObserver
) -> None:
    summary = await _use_case(seeded, observer=observer).execute(_request(dry_run=True))

    assert summary.dry_run is True
    assert summary.matched_candidates == 2
    assert summary.created_tasks == 0
    assert seeded.tasks.tasks == []
    assert seeded.ledger.records == {}
    assert seeded.runs.runs == {}
    assert seeded.audit.entries == []
    assert observer.candidates == ["dry_run", "dry_run"]
    assert observer.runs == ["dry_run"]


async def test_existing_matching_task_is_linked(seeded: FakeWorld) -> None:
    await _use_case(seeded).execute(_request())
    task_ids = {t.id for t in seeded.tasks.tasks}
    seeded.ledger.records.clear()

    summary = await _use_case(seeded).execute(_request())

    assert summary.linked_existing_tasks == 2
    assert summary.created_tasks == 0
    assert len(seeded.tasks.tasks) == 2
    assert {r.generated_task_id for r in seeded.ledger.records.values()} == task_ids


async def test_condition_mismatch_is_skipped(seeded: FakeWorld) -> None:
    seeded.add_rule(
        "llc_only", match_condition={"field": "client_type", "op": "eq", "value": "LLC"}
    )

    summary = await _use_case(seeded).execute(_request())

    assert summary.evaluated_rules == 2
    assert summary.skipped_by_condition == 1
    assert summary.matched_candidates == 2


async def test_client_without_any_assignee_is_skipped(world: FakeWorld) -> None:
    world.add_active_version()
    world.add_rule("monthly_payment")
    world.add_client("c-1")

    summary = await _use_case(world).execute(_request())

    assert summary.skipped_no_assignee == 1
    assert summary.matched_candidates == 0
    assert world.ledger.records == {}


async def test_disabled_override_suppresses_rule_for_client(seeded: FakeWorld) -> None:
    seeded.rulebook.overrides.append(
        RuleOverride(
            id="o-1",
            tenant_id=TENANT_ID,
            client_id="c-1",
            rule_id="rule-monthly_payment",
            is_enabled=False,
        )
    )

    summary = await _use_case(seeded).execute(_request())

    assert summary.evaluated_rules == 1
    assert summary.matched_candidates == 0
    assert summary.skipped_by_condition == 0


async def test_due_rule_override_moves_due_date(seeded: FakeWorld) -> None:
    seeded.rulebook.overrides.append(
        RuleOverride(
            id="o-1",
            tenant_id=TENANT_ID,
            client_id="c-1",
            rule_id="rule-monthly_payment",
            due_rule_override={"kind": "day_of_month", "day": 10},
        )
    )

    await _use_case(seeded).execute(_request())

    due_dates = sorted(t.candidate.due_date for t in seeded.tasks.tasks)
    assert due_dates == [date(2026, 1, 10), date(2026, 2, 10)]


async def test_holidays_shift_due_dates(seeded: FakeWorld) -> None:
    await _use_case(seeded).execute(_request(holidays=[date(2026, 1, 20)]))

    due_dates = sorted(t.candidate.due_date for t in seeded.tasks.tasks)
    assert due_dates == [date(2026, 1, 19), date(2026, 2, 20)]


async def test_missing_author_records_error_then_force_retry_recovers(world: FakeWorld) -> None:
    world.add_active_version()
    world.add_rule("monthly_payment")
    world.add_client("c-1")
    world.directory.assignments.append(ClientAssignment("c-1", "acc-1"))

    first = await _use_case(world).execute(_request(actor_profile_id=None))

    assert first.created_tasks == 0
    assert [e.message for e in first.errors] == [NO_CREATED_BY_MESSAGE] * 2
    assert {e.period_key for e in first.errors} == {"2026-01", "2026-02"}
    errored = world.ledger.by_status(GenerationStatus.ERROR)
    assert len(errored) == 2
    assert {r.error_message for r in errored} == {NO_CREATED_BY_MESSAGE}

    without_force = await _use_case(world).execute(_request())
    assert without_force.skipped_already_generated == 2
    assert world.tasks.tasks == []

    forced = await _use_case(world).execute(_request(force_retry_without_linked_task=True))
    assert forced.created_tasks == 2
    assert len(world.ledger.by_status(GenerationStatus.LINKED)) == 2


async def test_conflict_with_linked_winner_counts_as_already_generated(
    seeded: FakeWorld, observer: RecordingObserver
) -> None:
    seeded.ledger.concurrent_winner = GenerationRecord(
        id="winner",
        tenant_id=TENANT_ID,
        client_id="c-1",
        rule_id="rule-monthly_payment",
        period_key="2026-01",
        scheduled_due_date=date(2026, 1, 20),
        status=GenerationStatus.LINKED,
        generated_task_id="task-from-other-run",
    )

    summary = await _use_case(seeded, observer=observer).execute(
        _request(to_date=date(2026, 1, 31))
    )

    assert summary.skipped_already_generated == 1
    assert summary.created_tasks == 0
    assert summary.errors == []
    assert seeded.tasks.tasks == []
    assert observer.candidates == ["already_generated"]


async def test_conflict_with_unlinked_winner_creates_task(seeded: FakeWorld) -> None:
    seeded.ledger.concurrent_winner = GenerationRecord(
        id="winner",
        tenant_id=TENANT_ID,
        client_id="c-1",
        rule_id="rule-monthly_payment",
        period_key="2026-01",
        scheduled_due_date=date(2026, 1, 20),
        status=GenerationStatus.CREATED,
    )

    summary = await _use_case(seeded).execute(_request(to_date=date(2026, 1, 31)))

    assert summary.created_tasks == 1
    (record,) = seeded.ledger.records.values()
    assert record.id == "winner"
    assert record.generated_task_id == seeded.tasks.tasks[0].id


async def test_task_errors_are_truncated(seeded: FakeWorld, observer: RecordingObserver) -> None:
    seeded.tasks.fail_message = "x" * 50

    summary = await _use_case(seeded, observer=observer, error_max_length=10).execute(_request())

    assert [e.message for e in summary.errors] == ["x" * 10, "x" * 10]
    assert {r.error_message for r in seeded.ledger.records.values()} == {"x" * 10}
    assert observer.candidates == ["error", "error"]
    assert seeded.audit.entries[0]["meta"]["errors_count"] == 2


async def test_load_failure_fails_run_and_raises(
    seeded: FakeWorld, observer: RecordingObserver
) -> None:
    seeded.directory.fail_on.add("list_clients")
    use_case = _use_case(seeded, observer=observer)

    with pytest.raises(RulebookLoadError) as exc_info:
        await use_case.execute(_request())

    assert exc_info.value.details["tenant_id"] == TENANT_ID
    (run,) = seeded.runs.runs.values()
    assert run["status"] == "failed"
    assert run["error_message"] == "clients table unavailable"
    (entry,) = seeded.audit.entries
    assert entry["action"] == AUDIT_ACTION_FAILED
    assert entry["meta"]["error"] == "clients table unavailable"
    assert seeded.uows[0].rollbacks >= 1
    assert observer.runs == ["failed"]


async def test_no_active_version_returns_empty_summary(
    world: FakeWorld, observer: RecordingObserver
) -> None:
    world.add_client("c-1")

    summary = await _use_case(world, observer=observer).execute(_request())

    assert summary.active_version is None
    assert summary.processed_clients == 0
    assert world.audit.entries == []
    (run,) = world.runs.runs.values()
    assert run["status"] == "completed"
    assert observer.runs == ["no_active_version"]


async def test_inverted_window_is_rejected_before_io(world: FakeWorld) -> None:
    use_case = _use_case(world)

    with pytest.raises(GenerationWindowError):
        await use_case.execute(_request(from_date=date(2026, 2, 1), to_date=JAN_1))

    assert world.uows[0].entered == 0


async def test_default_window_starts_today(world: FakeWorld) -> None:
    use_case = _use_case(world, today=lambda: JAN_1)

    summary = await use_case.execute(
        RunRulebookGenerationRequestDTO(tenant_id=TENANT_ID, dry_run=True)
    )

    assert summary.from_date == JAN_1
    assert summary.to_date == date(2026, 2, 15)


@pytest.mark.parametrize(
    "due_rule",
    [
        {"kind": "day_of_month", "day": 20, "month_offset": 200000},
        {"kind": "days_after_period_end", "days": 10**7},
        {"kind": "fixed_date", "month": 2, "day": 400},
    ],
)
async def test_out_of_range_rule_does_not_abort_the_run(
    seeded: FakeWorld, observer: RecordingObserver, due_rule: dict[str, Any]
) -> None:
    seeded.add_rule("broken", due_rule=due_rule)

    summary = await _use_case(seeded, observer=observer).execute(_request())

    assert summary.evaluated_rules == 2
    assert summary.created_tasks == 2
    assert {t.candidate.rule_code for t in seeded.tasks.tasks} == {"monthly_payment"}
    (run,) = seeded.runs.runs.values()
    assert run["status"] == "completed"
    (entry,) = seeded.audit.entries
    assert entry["action"] == AUDIT_ACTION_RUN
    assert observer.runs == ["completed"]


async def test_unresolvable_due_date_skips_only_that_rule(
    seeded: FakeWorld, monkeypatch: pytest.MonkeyPatch
) -> None:
    seeded.add_rule("far_future", due_rule={"kind": "days_after_period_end", "days": 45})
    resolve = generation_module.resolve_due_date_for_period

    def _resolve(period: PeriodWindow, due_rule: DueRule, context: Any = None) -> Any:
        if getattr(due_rule, "days", None) == 45:
            raise OverflowError("date value out of range")
        return resolve(period, due_rule, context)

    monkeypatch.setattr(generation_module, "resolve_due_date_for_period", _resolve)

    summary = await _use_case(seeded).execute(_request())

    assert summary.created_tasks == 2
    assert summary.errors == []
    (run,) = seeded.runs.runs.values()
    assert run["status"] == "completed"
    assert len(seeded.audit.entries) == 1


async def test_non_string_legal_basis_entries_are_dropped(seeded: FakeWorld) -> None:
    seeded.rulebook.rules.clear()
    seeded.add_rule(
        "cited",
        legal_basis=("Tax Code art. 1", 5),
        task_template={"title": "Pay", "description": "Monthly"},
    )

    summary = await _use_case(seeded).execute(_request())

    assert summary.created_tasks == 2
    for task in seeded.tasks.tasks:
        assert task.candidate.legal_basis == ("Tax Code art. 1",)
        assert task.candidate.description == "Monthly\n\nLegal basis: Tax Code art. 1"


async def test_annual_rule_due_after_year_end_lands_in_window(seeded: FakeWorld) -> None:
    seeded.rulebook.rules.clear()
    seeded.add_rule(
        "annual_report",
        recurrence={"kind": "annual"},
        due_rule={"kind": "days_after_period_end", "days": 40},
    )

    summary = await _use_case(seeded).execute(_request())

    assert summary.created_tasks == 1
    (task,) = seeded.tasks.tasks
    assert task.candidate.period_key == "2025"
    assert task.candidate.due_date == date(2026, 2, 9)


async def test_quarterly_rule_uses_previous_quarter_key(seeded: FakeWorld) -> None:
    seeded.rulebook.rules.clear()
    seeded.add_rule(
        "quarterly_report",
        recurrence={"kind": "quarterly"},
        due_rule={"kind": "days_after_period_end", "days": 40},
    )

    summary = await _use_case(seeded).execute(_request())

    assert summary.created_tasks == 1
    (task,) = seeded.tasks.tasks
    assert task.candidate.period_key == "2025-Q4"
    assert task.candidate.due_date == date(2026, 2, 9)
    (record,) = seeded.ledger.records.values()
    assert record.period_key == "2025-Q4"


async def test_unknown_condition_operator_skips_rule(seeded: FakeWorld) -> None:
    seeded.add_rule(
        "odd_operator", match_condition={"field": "client_type", "op": "matches", "value": "FOP"}
    )

    summary = await _use_case(seeded).execute(_request())

    assert summary.skipped_by_condition == 1
    assert summary.created_tasks == 2
    assert {t.candidate.rule_code for t in seeded.tasks.tasks} == {"monthly_payment"}
