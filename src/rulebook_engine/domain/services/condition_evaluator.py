# src/rulebook_engine/domain/services/condition_evaluator.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Match-condition evaluation.

Purpose:
    Decide whether a rule applies to a client by evaluating its parsed
    condition tree against the client's normalised profile.

Layer:
    domain/services

Notes:
    - Total and fail-closed: malformed nodes, unknown operators and type
      mismatches evaluate to ``False``; nothing here raises.
    - ``None`` (no condition) matches every client.
    - Field paths are dotted (``payroll.advance_day``). A path that leaves
      the mapping resolves to ``None``.
    - Ordering operators require two real numbers; ``bool`` is not a number.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from rulebook_engine.domain.entities.rule_config import (
    AllCondition,
    AnyCondition,
    ConditionNode,
    InvalidCondition,
    LeafCondition,
)
from rulebook_engine.domain.enums.rulebook import ConditionOperator
from rulebook_engine.domain.services.rule_config_parser import parse_condition

__all__ = [
    "evaluate_condition",
    "evaluate_rule_condition",
    "resolve_field_path",
]


def resolve_field_path(record: Mapping[str, Any], path: str) -> Any:
    """Return the value at a dotted ``path`` inside ``record`` or ``None``."""
    cursor: Any = record
    for part in (p for p in path.split(".") if p):
        if isinstance(cursor, Mapping):
            cursor = cursor.get(part)
        elif isinstance(cursor, list) and part.isdigit() and int(part) < len(cursor):
            cursor = cursor[int(part)]
        else:
            return None
    return cursor


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(left: Any, right: Any) -> bool:
    # True == 1 in Python; rule authors compare flags and counts separately.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _member_of(item: Any, collection: Sequence[Any]) -> bool:
    return any(_strict_equals(item, candidate) for candidate in collection)


def _evaluate_leaf(leaf: LeafCondition, profile: Mapping[str, Any]) -> bool:
    left = resolve_field_path(profile, leaf.field)
    right = leaf.value
    op = leaf.op

    if op is ConditionOperator.EQ:
        return _strict_equals(left, right)
    if op is ConditionOperator.NEQ:
        return not _strict_equals(left, right)
    if op in (ConditionOperator.GT, ConditionOperator.GTE, ConditionOperator.LT, ConditionOperator.LTE):
        if not (_is_number(left) and _is_number(right)):
            return False
        if op is ConditionOperator.GT:
            return bool(left > right)
        if op is ConditionOperator.GTE:
            return bool(left >= right)
        if op is ConditionOperator.LT:
            return bool(left < right)
        return bool(left <= right)
    if op is ConditionOperator.IN:
        return isinstance(right, list) and _member_of(left, right)
    if op is ConditionOperator.NIN:
        return isinstance(right, list) and not _member_of(left, right)
    if op is ConditionOperator.CONTAINS:
        if isinstance(left, (list, tuple, set, frozenset)):
            return _member_of(right, list(left))
        if isinstance(left, str) and isinstance(right, str):
            return right in left
        return False
    if op is ConditionOperator.EXISTS:
        return left is not None
    return False


def evaluate_condition(node: ConditionNode | None, profile: Mapping[str, Any]) -> bool:
    """Evaluate a parsed condition tree against a profile mapping.

    Args:
        node: Parsed condition, or ``None`` for "no filter".
        profile: Client profile as a mapping (see ``ClientProfile.as_mapping``).

    Returns:
        bool: Whether the rule applies.
    """
    if node is None:
        return True
    if isinstance(node, LeafCondition):
        return _evaluate_leaf(node, profile)
    if isinstance(node, AllCondition):
        return all(evaluate_condition(child, profile) for child in node.children)
    if isinstance(node, AnyCondition):
        if not node.children:
            return True
        return any(evaluate_condition(child, profile) for child in node.children)
    if isinstance(node, InvalidCondition):
        return False
    return False


def evaluate_rule_condition(raw_condition: Any, profile: Mapping[str, Any]) -> bool:
    """Parse and evaluate a raw JSON condition in one step."""
    return evaluate_condition(parse_condition(raw_condition), profile)
