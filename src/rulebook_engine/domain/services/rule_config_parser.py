# src/rulebook_engine/domain/services/rule_config_parser.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Rule configuration parser.

Purpose:
    Turn the JSON blobs stored on rules and overrides into the closed
    tagged unions defined in :mod:`rulebook_engine.domain.entities.rule_config`.

    Every parser is total: it never raises. A blob that does not have a
    recognised shape yields ``None`` (recurrence, due rule, template) or an
    ``InvalidCondition`` node (conditions), which the generation loop treats
    as "not actionable" or "does not match" respectively.

Layer:
    domain/services

Notes:
    - Booleans are never accepted where a number is expected.
    - Integral floats (``20.0``) are accepted as day/offset numbers since JSON
      producers do not always preserve the distinction.
    - An unrecognised ``shift_if_non_business_day`` value falls back to
      ``none`` rather than invalidating the whole due rule.
    - Numeric fields are bounded (days 1..31, ``month_offset`` within
      +/-24 months, ``days`` 0..731) so a parsed policy always resolves to a
      representable date. Out-of-range values make the due rule invalid.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rulebook_engine.domain.entities.rule_config import (
    AllCondition,
    AnyCondition,
    BusinessDayOfMonthDueRule,
    ConditionNode,
    DayOfMonthDueRule,
    DaysAfterPeriodEndDueRule,
    DueRule,
    FixedDateDueRule,
    InvalidCondition,
    LeafCondition,
    ProfileDayOfMonthDueRule,
    Recurrence,
    TaskTemplate,
)
from rulebook_engine.domain.enums.rulebook import (
    AssigneePolicy,
    BusinessDayShift,
    ConditionOperator,
    DueRuleKind,
    PayrollProfileField,
    RecurrenceKind,
)

__all__ = [
    "parse_condition",
    "parse_due_rule",
    "parse_recurrence",
    "parse_task_template",
]

MAX_MONTH_OFFSET = 24
MAX_DAYS_AFTER_PERIOD_END = 731


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _bounded(value: Any, low: int, high: int) -> int | None:
    number = _as_int(value)
    if number is None or not low <= number <= high:
        return None
    return number


def _day(value: Any) -> int | None:
    return _bounded(value, 1, 31)


def _parse_shift(value: Any) -> BusinessDayShift:
    if isinstance(value, str):
        try:
            return BusinessDayShift(value)
        except ValueError:
            return BusinessDayShift.NONE
    return BusinessDayShift.NONE


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def parse_recurrence(value: Any) -> Recurrence | None:
    """Parse a recurrence blob such as ``{"kind": "semi_monthly", "event": "advance"}``.

    Args:
        value: Raw JSON value.

    Returns:
        Recurrence | None: Parsed recurrence, or ``None`` for unknown shapes.
    """
    if not isinstance(value, Mapping):
        return None
    kind = value.get("kind")
    if not isinstance(kind, str):
        return None
    try:
        parsed_kind = RecurrenceKind(kind)
    except ValueError:
        return None
    return Recurrence(kind=parsed_kind, event=_optional_str(value.get("event")) or None)


def parse_due_rule(value: Any) -> DueRule | None:
    """Parse a due-date policy blob.

    Each kind has its own required numeric fields:

        * ``day_of_month`` / ``business_day_of_month``: ``day``
        * ``profile_day_of_month``: ``profile_field`` naming a payroll day
        * ``days_after_period_end``: ``days``
        * ``fixed_date``: ``month`` and ``day``

    ``month_offset`` (where applicable) defaults to 0 and
    ``shift_if_non_business_day`` defaults to ``none``.

    Args:
        value: Raw JSON value.

    Returns:
        DueRule | None: Parsed policy, or ``None`` when the kind is unknown or
        a required field is missing, non-numeric or out of range.
    """
    if not isinstance(value, Mapping):
        return None
    kind = value.get("kind")
    if not isinstance(kind, str):
        return None
    try:
        parsed_kind = DueRuleKind(kind)
    except ValueError:
        return None

    shift = _parse_shift(value.get("shift_if_non_business_day"))
    raw_offset = value.get("month_offset")
    month_offset = (
        0 if raw_offset is None else _bounded(raw_offset, -MAX_MONTH_OFFSET, MAX_MONTH_OFFSET)
    )
    if month_offset is None:
        return None

    if parsed_kind in (DueRuleKind.DAY_OF_MONTH, DueRuleKind.BUSINESS_DAY_OF_MONTH):
        day = _day(value.get("day"))
        if day is None:
            return None
        if parsed_kind is DueRuleKind.BUSINESS_DAY_OF_MONTH:
            return BusinessDayOfMonthDueRule(day=day, month_offset=month_offset, shift=shift)
        return DayOfMonthDueRule(day=day, month_offset=month_offset, shift=shift)

    if parsed_kind is DueRuleKind.PROFILE_DAY_OF_MONTH:
        raw_field = value.get("profile_field")
        if not isinstance(raw_field, str):
            return None
        try:
            profile_field = PayrollProfileField(raw_field)
        except ValueError:
            return None
        return ProfileDayOfMonthDueRule(
            profile_field=profile_field, month_offset=month_offset, shift=shift
        )

    if parsed_kind is DueRuleKind.DAYS_AFTER_PERIOD_END:
        days = _bounded(value.get("days"), 0, MAX_DAYS_AFTER_PERIOD_END)
        if days is None:
            return None
        return DaysAfterPeriodEndDueRule(days=days, shift=shift)

    month = _bounded(value.get("month"), 1, 12)
    day = _day(value.get("day"))
    if month is None or day is None:
        return None
    return FixedDateDueRule(month=month, day=day, shift=shift)


def parse_task_template(value: Any) -> TaskTemplate | None:
    """Parse a task template blob. Only ``title`` is required."""
    if not isinstance(value, Mapping):
        return None
    title = value.get("title")
    if not isinstance(title, str):
        return None

    policy: AssigneePolicy | None = None
    raw_policy = value.get("assignee_policy")
    if isinstance(raw_policy, str):
        try:
            policy = AssigneePolicy(raw_policy)
        except ValueError:
            policy = None

    proof_required = value.get("proof_required")

    return TaskTemplate(
        title=title,
        description=_optional_str(value.get("description")),
        task_type=_optional_str(value.get("task_type")),
        priority=_as_int(value.get("priority")),
        proof_required=proof_required if isinstance(proof_required, bool) else None,
        assignee_policy=policy,
        assignee_id=_optional_str(value.get("assignee_id")) or None,
    )


def parse_condition(value: Any) -> ConditionNode | None:
    """Parse a match-condition tree.

    Args:
        value: Raw JSON value stored on the rule.

    Returns:
        ConditionNode | None: ``None`` when the condition is absent or an empty
        mapping ("no filter"). Malformed nodes anywhere in the tree become
        ``InvalidCondition`` and make their branch fail closed.
    """
    if value is None:
        return None
    if isinstance(value, Mapping) and not value:
        return None
    return _parse_node(value)


def _parse_node(value: Any) -> ConditionNode:
    if not isinstance(value, Mapping):
        return InvalidCondition(reason="condition node must be an object")

    if "field" in value or "op" in value:
        return _parse_leaf(value)

    has_all = "all" in value
    has_any = "any" in value
    if not has_all and not has_any:
        return InvalidCondition(reason="condition group needs 'all' or 'any'")

    groups: list[ConditionNode] = []
    if has_all:
        children = value["all"]
        if not isinstance(children, list):
            return InvalidCondition(reason="'all' must be a list")
        groups.append(AllCondition(children=tuple(_parse_node(c) for c in children)))
    if has_any:
        children = value["any"]
        if not isinstance(children, list):
            return InvalidCondition(reason="'any' must be a list")
        groups.append(AnyCondition(children=tuple(_parse_node(c) for c in children)))

    if len(groups) == 1:
        return groups[0]
    return AllCondition(children=tuple(groups))


def _parse_leaf(value: Mapping[str, Any]) -> ConditionNode:
    field = value.get("field")
    op = value.get("op")
    if not isinstance(field, str) or not field.strip():
        return InvalidCondition(reason="leaf 'field' must be a non-empty string")
    if not isinstance(op, str):
        return InvalidCondition(reason="leaf 'op' must be a string")
    try:
        operator = ConditionOperator(op)
    except ValueError:
        return InvalidCondition(reason=f"unknown operator {op!r}")
    return LeafCondition(field=field, op=operator, value=value.get("value"))
