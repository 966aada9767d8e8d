# src/rulebook_engine/domain/entities/generation.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Generation entities.

Purpose:
    Define the value objects flowing through a generation run: period
    windows, resolved due dates, fully built task candidates, and the
    idempotency ledger record guarding each (client, rule, period).

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from rulebook_engine.domain.enums.rulebook import GenerationStatus, TaskRecurrence

__all__ = [
    "DueDateResolution",
    "GenerationCandidate",
    "GenerationRecord",
    "PeriodWindow",
]


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    """One recurrence occurrence.

    Attributes:
        period_key:
            Stable key (``YYYY-MM``, ``YYYY-MM-<event>``, ``YYYY-Qn`` or
            ``YYYY``). Part of the idempotency key.
        period_start:
            First calendar day of the period.
        period_end:
            Last calendar day of the period.
    """

    period_key: str
    period_start: date
    period_end: date


@dataclass(frozen=True, slots=True)
class DueDateResolution:
    """Due date resolved for a period."""

    due_date: date
    period_key: str
    period_start: date
    period_end: date


@dataclass(frozen=True, slots=True)
class GenerationCandidate:
    """A (client, rule, period) occurrence ready to be materialised as a task.

    Attributes:
        client_id: Target client.
        rule_id: Source rule.
        rule_code: Source rule code, kept for error reporting and audit.
        period_key: Period key from the enumerator.
        due_date: Resolved (and business-day shifted) due date.
        title: Task title from the effective template.
        description: Template description with the legal basis appended.
        task_type: Host task type.
        priority: Host task priority.
        proof_required: Whether the task requires proof.
        recurrence: Recurrence label copied onto the task.
        recurrence_days: Payroll days for semi-monthly tasks, else ``None``.
        assignee_id: Resolved assignee.
        legal_basis: Citations from the rule.
    """

    client_id: str
    rule_id: str
    rule_code: str
    period_key: str
    due_date: date
    title: str
    description: str | None
    task_type: str
    priority: int
    proof_required: bool
    recurrence: TaskRecurrence
    recurrence_days: tuple[int, ...] | None
    assignee_id: str
    legal_basis: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GenerationRecord:
    """Ledger row guaranteeing at most one task per (tenant, client, rule, period)."""

    id: str
    tenant_id: str
    client_id: str
    rule_id: str
    period_key: str
    scheduled_due_date: date
    status: GenerationStatus
    generated_task_id: str | None = None
    error_message: str | None = None

    @property
    def is_linked(self) -> bool:
        """Return True when a task has been attached to this record."""
        return self.generated_task_id is not None
