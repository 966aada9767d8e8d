# src/rulebook_engine/domain/services/candidate_builder.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Generation candidate construction.

Purpose:
    Build the task-shaped ``GenerationCandidate`` for a resolved
    (client, rule, period) occurrence: title, description with legal basis,
    task defaults, recurrence label and payroll recurrence days.

Layer:
    domain/services
"""

from __future__ import annotations

from collections.abc import Sequence

from rulebook_engine.domain.entities.generation import DueDateResolution, GenerationCandidate
from rulebook_engine.domain.entities.practice import ClientProfile
from rulebook_engine.domain.entities.rule_config import (
    LITERAL_DAY_DUE_RULES,
    DueRule,
    ProfileDayOfMonthDueRule,
    Recurrence,
    TaskTemplate,
)
from rulebook_engine.domain.entities.rulebook import RulebookRule
from rulebook_engine.domain.enums.rulebook import (
    PayrollProfileField,
    RecurrenceKind,
    TaskRecurrence,
)

__all__ = [
    "DEFAULT_TASK_PRIORITY",
    "DEFAULT_TASK_TYPE",
    "build_candidate",
    "build_recurrence_days",
    "build_task_description",
    "task_recurrence_for",
]

DEFAULT_TASK_TYPE = "other"
DEFAULT_TASK_PRIORITY = 2

_RECURRENCE_LABELS: dict[RecurrenceKind, TaskRecurrence] = {
    RecurrenceKind.MONTHLY: TaskRecurrence.MONTHLY,
    RecurrenceKind.SEMI_MONTHLY: TaskRecurrence.SEMI_MONTHLY,
    RecurrenceKind.QUARTERLY: TaskRecurrence.QUARTERLY,
    RecurrenceKind.ANNUAL: TaskRecurrence.YEARLY,
}


def task_recurrence_for(recurrence: Recurrence) -> TaskRecurrence:
    """Map a rule recurrence onto the host task recurrence label."""
    return _RECURRENCE_LABELS.get(recurrence.kind, TaskRecurrence.NONE)


def _valid_day(day: int) -> bool:
    return 1 <= day <= 31


def build_recurrence_days(
    recurrence: Recurrence,
    profile: ClientProfile,
    due_rule: DueRule,
) -> tuple[int, ...] | None:
    """Return the payroll days a semi-monthly task repeats on.

    Only semi-monthly rules carry recurrence days: the client's advance and
    final payroll days plus the literal day of a day-of-month policy, sorted
    and de-duplicated. Days outside 1..31 are dropped.
    """
    if recurrence.kind is not RecurrenceKind.SEMI_MONTHLY:
        return None

    days: set[int] = set()
    for day in (profile.payroll_advance_day, profile.payroll_final_day):
        if _valid_day(day):
            days.add(day)
    if isinstance(due_rule, ProfileDayOfMonthDueRule):
        profile_day = (
            profile.payroll_advance_day
            if due_rule.profile_field is PayrollProfileField.PAYROLL_ADVANCE_DAY
            else profile.payroll_final_day
        )
        if _valid_day(profile_day):
            days.add(profile_day)
    elif isinstance(due_rule, LITERAL_DAY_DUE_RULES) and _valid_day(due_rule.day):
        days.add(due_rule.day)

    return tuple(sorted(days)) or None


def build_task_description(template: TaskTemplate, legal_basis: Sequence[str]) -> str | None:
    """Return the template description with a ``Legal basis:`` paragraph appended."""
    suffix = f"Legal basis: {'; '.join(legal_basis)}" if legal_basis else None
    if template.description and suffix:
        return f"{template.description}\n\n{suffix}"
    return template.description or suffix


def build_candidate(
    *,
    rule: RulebookRule,
    profile: ClientProfile,
    recurrence: Recurrence,
    due_rule: DueRule,
    template: TaskTemplate,
    resolution: DueDateResolution,
    assignee_id: str,
) -> GenerationCandidate:
    """Assemble the candidate for one resolved occurrence."""
    return GenerationCandidate(
        client_id=profile.client_id,
        rule_id=rule.id,
        rule_code=rule.code,
        period_key=resolution.period_key,
        due_date=resolution.due_date,
        title=template.title,
        description=build_task_description(template, rule.legal_basis),
        task_type=template.task_type or DEFAULT_TASK_TYPE,
        priority=template.priority if template.priority is not None else DEFAULT_TASK_PRIORITY,
        proof_required=bool(template.proof_required),
        recurrence=task_recurrence_for(recurrence),
        recurrence_days=build_recurrence_days(recurrence, profile, due_rule),
        assignee_id=assignee_id,
        legal_basis=tuple(rule.legal_basis),
    )
