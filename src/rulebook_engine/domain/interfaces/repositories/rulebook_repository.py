# src/rulebook_engine/domain/interfaces/repositories/rulebook_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Rulebook repository interface.

Purpose:
    Define read and maintenance operations over rulebook versions, rules and
    per-client rule overrides.

Layer:
    domain/interfaces/repositories

Notes:
    Implementations never commit; the calling use case owns transaction
    boundaries through the UnitOfWork.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from rulebook_engine.domain.entities.rulebook import (
    NewRulebookRule,
    RuleOverride,
    RulebookRule,
    RulebookVersion,
)


class RulebookRepository(Protocol):
    """Protocol for rulebook version/rule/override persistence."""

    async def get_active_version(self, tenant_id: str) -> RulebookVersion | None:
        """Return the tenant's active version, or ``None`` when none is active."""

    async def get_version_by_code(self, tenant_id: str, code: str) -> RulebookVersion | None:
        """Return a version by its tenant-scoped code."""

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
        """Insert an inactive version and return it."""

    async def activate_version(self, tenant_id: str, version_id: str) -> None:
        """Deactivate every other version of the tenant, then activate ``version_id``."""

    async def list_active_rules(self, tenant_id: str, version_id: str) -> Sequence[RulebookRule]:
        """Return active rules ordered by ``sort_order`` then creation time."""

    async def delete_rules(self, tenant_id: str, version_id: str) -> int:
        """Delete every rule of a version and return the number removed."""

    async def upsert_rules(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rules: Sequence[NewRulebookRule],
        created_by: str | None = None,
    ) -> int:
        """Insert or update rules keyed by (tenant, version, code).

        Returns:
            int: Number of rules written.
        """

    async def get_rule(
        self, tenant_id: str, version_id: str, rule_id: str
    ) -> RulebookRule | None:
        """Return one rule of the version, active or not."""

    async def get_rule_by_code(
        self, tenant_id: str, version_id: str, code: str
    ) -> RulebookRule | None:
        """Return the rule holding ``code`` within the version."""

    async def create_rule(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rule: NewRulebookRule,
        created_by: str | None = None,
    ) -> RulebookRule:
        """Insert one rule into the version and return it."""

    async def update_rule(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rule_id: str,
        rule: NewRulebookRule,
    ) -> RulebookRule | None:
        """Overwrite a rule of the version; ``None`` when it does not exist there."""

    async def set_rule_active(
        self, tenant_id: str, version_id: str, rule_id: str, is_active: bool
    ) -> bool:
        """Toggle a rule's active flag; ``False`` when it does not exist in the version."""

    async def delete_rule(self, tenant_id: str, version_id: str, rule_id: str) -> bool:
        """Delete one rule; ``False`` when it does not exist in the version."""

    async def list_overrides(self, tenant_id: str) -> Sequence[RuleOverride]:
        """Return every rule override of the tenant."""
