# src/rulebook_engine/domain/entities/rule_config.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Typed rule configuration.

Purpose:
    Represent the loosely-typed JSON blobs stored on rules and overrides
    (recurrence, due-date policy, task template, match condition) as closed
    tagged unions. Values of these types are produced only by
    :mod:`rulebook_engine.domain.services.rule_config_parser`; anything that
    fails to parse never reaches the generation loop.

Layer:
    domain/entities

Notes:
    - ``DueRule`` and ``ConditionNode`` are plain ``Union`` aliases so that
      consumers dispatch with ``isinstance`` (or ``match``) over a closed set.
    - ``InvalidCondition`` is the parse result for any malformed condition
      node. It always evaluates to "does not match".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, TypeAlias

from rulebook_engine.domain.enums.rulebook import (
    AssigneePolicy,
    BusinessDayShift,
    ConditionOperator,
    DueRuleKind,
    PayrollProfileField,
    RecurrenceKind,
)

__all__ = [
    "AllCondition",
    "AnyCondition",
    "BusinessDayOfMonthDueRule",
    "ConditionNode",
    "DayOfMonthDueRule",
    "DaysAfterPeriodEndDueRule",
    "DueRule",
    "FixedDateDueRule",
    "InvalidCondition",
    "LITERAL_DAY_DUE_RULES",
    "LeafCondition",
    "ProfileDayOfMonthDueRule",
    "Recurrence",
    "TaskTemplate",
]


@dataclass(frozen=True, slots=True)
class Recurrence:
    """Recurrence of an obligation.

    Attributes:
        kind:
            Monthly, semi-monthly, quarterly or annual.
        event:
            Optional tag distinguishing the two occurrences of a semi-monthly
            obligation (e.g. ``"advance"`` and ``"salary"``). Ignored for
            other kinds.
    """

    kind: RecurrenceKind
    event: str | None = None


@dataclass(frozen=True, slots=True)
class DayOfMonthDueRule:
    """Literal day within the period's (optionally shifted) start month."""

    kind: ClassVar[DueRuleKind] = DueRuleKind.DAY_OF_MONTH

    day: int
    month_offset: int = 0
    shift: BusinessDayShift = BusinessDayShift.NONE


@dataclass(frozen=True, slots=True)
class BusinessDayOfMonthDueRule:
    """Stored ``business_day_of_month`` policy.

    Resolves exactly like ``DayOfMonthDueRule``: the business-day behaviour
    comes from ``shift``, not from the kind.
    """

    kind: ClassVar[DueRuleKind] = DueRuleKind.BUSINESS_DAY_OF_MONTH

    day: int
    month_offset: int = 0
    shift: BusinessDayShift = BusinessDayShift.NONE


@dataclass(frozen=True, slots=True)
class ProfileDayOfMonthDueRule:
    """Day number taken from the client's payroll calendar."""

    kind: ClassVar[DueRuleKind] = DueRuleKind.PROFILE_DAY_OF_MONTH

    profile_field: PayrollProfileField
    month_offset: int = 0
    shift: BusinessDayShift = BusinessDayShift.NONE


@dataclass(frozen=True, slots=True)
class DaysAfterPeriodEndDueRule:
    """Period end plus a number of calendar days."""

    kind: ClassVar[DueRuleKind] = DueRuleKind.DAYS_AFTER_PERIOD_END

    days: int
    shift: BusinessDayShift = BusinessDayShift.NONE


@dataclass(frozen=True, slots=True)
class FixedDateDueRule:
    """Literal month/day anchored to the year the period starts in."""

    kind: ClassVar[DueRuleKind] = DueRuleKind.FIXED_DATE

    month: int
    day: int
    shift: BusinessDayShift = BusinessDayShift.NONE


DueRule: TypeAlias = (
    DayOfMonthDueRule
    | BusinessDayOfMonthDueRule
    | ProfileDayOfMonthDueRule
    | DaysAfterPeriodEndDueRule
    | FixedDateDueRule
)

# Due rules that carry a literal day number.
LITERAL_DAY_DUE_RULES = (DayOfMonthDueRule, BusinessDayOfMonthDueRule)


@dataclass(frozen=True, slots=True)
class TaskTemplate:
    """Template for tasks materialised from a rule.

    Attributes:
        title: Task title. The only required field.
        description: Optional body text; legal basis is appended at build time.
        task_type: Host task type (``payment``, ``tax_report``...). Defaults later.
        priority: Host priority number. Defaults later.
        proof_required: Whether the task requires an uploaded proof.
        assignee_policy: How the assignee is chosen.
        assignee_id: Explicit assignee, or the fallback for other policies.
    """

    title: str
    description: str | None = None
    task_type: str | None = None
    priority: int | None = None
    proof_required: bool | None = None
    assignee_policy: AssigneePolicy | None = None
    assignee_id: str | None = None


# ---------------------------------------------------------------------------
# Match conditions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LeafCondition:
    """Predicate ``<profile field> <op> <value>``.

    Attributes:
        field: Dotted path into the client profile mapping.
        op: Comparison operator.
        value: Right-hand operand as stored in JSON (``None`` when absent).
    """

    field: str
    op: ConditionOperator
    value: Any = None


@dataclass(frozen=True, slots=True)
class AllCondition:
    """Conjunction. An empty child list matches."""

    children: tuple[ConditionNode, ...]


@dataclass(frozen=True, slots=True)
class AnyCondition:
    """Disjunction. An empty child list is treated as absent and matches."""

    children: tuple[ConditionNode, ...]


@dataclass(frozen=True, slots=True)
class InvalidCondition:
    """Malformed node; never matches."""

    reason: str


ConditionNode: TypeAlias = AllCondition | AnyCondition | LeafCondition | InvalidCondition
