# src/rulebook_engine/domain/entities/rulebook.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Rulebook entities.

Purpose:
    Storage-agnostic views of rulebook versions, rules and per-client
    overrides as read by the generation engine, plus the derived
    ``EffectiveRule`` produced by merging a rule with an override.

Layer:
    domain/entities

Notes:
    - ``RulebookRule`` keeps its configuration blobs raw (JSON-compatible
      mappings). Parsing happens once per (client, rule) in the override
      merger so that a malformed blob only disables that rule instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from rulebook_engine.domain.entities.rule_config import (
    ConditionNode,
    DueRule,
    Recurrence,
    TaskTemplate,
)

__all__ = [
    "EffectiveRule",
    "NewRulebookRule",
    "RuleOverride",
    "RulebookRule",
    "RulebookVersion",
    "normalize_legal_basis",
]


def normalize_legal_basis(raw: Any) -> tuple[str, ...]:
    """Return the non-blank string citations of ``raw`` as a stripped tuple."""
    if isinstance(raw, str):
        return (raw.strip(),) if raw.strip() else ()
    if raw is None or isinstance(raw, (bytes, Mapping)):
        return ()
    try:
        items = tuple(raw)
    except TypeError:
        return ()
    return tuple(item.strip() for item in items if isinstance(item, str) and item.strip())


@dataclass(frozen=True, slots=True)
class RulebookVersion:
    """Tenant-scoped named ruleset. At most one is active per tenant."""

    id: str
    tenant_id: str
    code: str
    name: str
    is_active: bool
    effective_from: date
    effective_to: date | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True)
class RulebookRule:
    """One compliance obligation definition within a version.

    Attributes:
        id: Rule identifier.
        tenant_id: Owning tenant.
        version_id: Owning rulebook version.
        code: Stable code, unique per (tenant, version).
        title: Human-readable rule title.
        is_active: Inactive rules are never loaded for generation.
        sort_order: Processing order within a client.
        legal_basis: Citations appended to generated task descriptions.
        match_condition: Raw condition tree, ``None``/empty for "all clients".
        recurrence: Raw recurrence blob.
        due_rule: Raw due-date policy blob.
        task_template: Raw task template blob.
    """

    id: str
    tenant_id: str
    version_id: str
    code: str
    title: str
    is_active: bool = True
    sort_order: int = 100
    legal_basis: tuple[str, ...] = ()
    match_condition: Mapping[str, Any] | None = None
    recurrence: Mapping[str, Any] = field(default_factory=dict)
    due_rule: Mapping[str, Any] = field(default_factory=dict)
    task_template: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Citations are stored as JSON; anything that is not a string is dropped.
        object.__setattr__(self, "legal_basis", normalize_legal_basis(self.legal_basis))


@dataclass(frozen=True, slots=True)
class NewRulebookRule:
    """Rule definition without persistence identity (used by seeding)."""

    code: str
    title: str
    sort_order: int
    legal_basis: tuple[str, ...]
    match_condition: Mapping[str, Any]
    recurrence: Mapping[str, Any]
    due_rule: Mapping[str, Any]
    task_template: Mapping[str, Any]
    is_active: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "legal_basis", normalize_legal_basis(self.legal_basis))


@dataclass(frozen=True, slots=True)
class RuleOverride:
    """Per-client customisation of a rule."""

    id: str
    tenant_id: str
    client_id: str
    rule_id: str
    is_enabled: bool = True
    due_rule_override: Mapping[str, Any] | None = None
    task_template_override: Mapping[str, Any] | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class EffectiveRule:
    """Rule configuration for one client after override merge and parsing.

    Attributes:
        enabled: ``False`` when an override disabled the rule for the client.
        recurrence: Parsed recurrence, ``None`` if the blob was malformed.
        due_rule: Parsed due policy. A well-formed override replaces a parsed base.
        task_template: Parsed template. A well-formed override replaces a parsed base.
        condition: Parsed match condition, ``None`` meaning "no filter".
    """

    enabled: bool
    recurrence: Recurrence | None
    due_rule: DueRule | None
    task_template: TaskTemplate | None
    condition: ConditionNode | None = None

    @property
    def is_actionable(self) -> bool:
        """Return True when the rule can produce candidates for the client."""
        return self.actionable_parts() is not None

    def actionable_parts(self) -> tuple[Recurrence, DueRule, TaskTemplate] | None:
        """Return ``(recurrence, due_rule, task_template)``, or ``None`` when not actionable."""
        if not self.enabled:
            return None
        if self.recurrence is None or self.due_rule is None or self.task_template is None:
            return None
        return self.recurrence, self.due_rule, self.task_template
