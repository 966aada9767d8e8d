# src/rulebook_engine/domain/services/rule_override_merger.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Rule/override merge.

Purpose:
    Combine a base rule with an optional per-client override into the
    ``EffectiveRule`` the generation loop works with.

Layer:
    domain/services

Notes:
    - ``is_enabled`` on an override wins outright.
    - Override due policy and template replace the base values only when both
      the base and the override parse. A malformed override never blanks out a
      working base value, and an override never supplies a part the base rule
      lacks (recurrence, condition, or a due policy or template that did not
      parse).
"""

from __future__ import annotations

from typing import TypeVar

from rulebook_engine.domain.entities.rulebook import EffectiveRule, RuleOverride, RulebookRule
from rulebook_engine.domain.services.rule_config_parser import (
    parse_condition,
    parse_due_rule,
    parse_recurrence,
    parse_task_template,
)

__all__ = ["merge_rule_with_override"]

_T = TypeVar("_T")


def merge_rule_with_override(rule: RulebookRule, override: RuleOverride | None) -> EffectiveRule:
    """Return the effective configuration of ``rule`` for one client.

    Args:
        rule: Base rule as stored in the active rulebook version.
        override: Client override for the rule, if any.

    Returns:
        EffectiveRule: Parsed configuration. Check ``is_actionable`` before
        generating from it.
    """
    recurrence = parse_recurrence(rule.recurrence)
    due_rule = parse_due_rule(rule.due_rule)
    template = parse_task_template(rule.task_template)
    condition = parse_condition(rule.match_condition)

    if override is None:
        return EffectiveRule(
            enabled=True,
            recurrence=recurrence,
            due_rule=due_rule,
            task_template=template,
            condition=condition,
        )

    return EffectiveRule(
        enabled=override.is_enabled,
        recurrence=recurrence,
        due_rule=_overlay(due_rule, parse_due_rule(override.due_rule_override)),
        task_template=_overlay(template, parse_task_template(override.task_template_override)),
        condition=condition,
    )


def _overlay(base: _T | None, replacement: _T | None) -> _T | None:
    # An override only replaces a part the base rule already defines.
    if base is None or replacement is None:
        return base
    return replacement
