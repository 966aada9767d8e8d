# src/rulebook_engine/adapters/repositories/rulebook_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Rulebook Repository (SQLAlchemy).

Purpose:
    Concrete SQLAlchemy implementation of the ``RulebookRepository`` port:
    versions, rules and per-client overrides.

Layer:
    adapters

Notes:
    - Never commits; the calling use case owns the transaction.
    - ``upsert_rules`` is a select-then-write keyed by (tenant, version, code)
      so it behaves identically on PostgreSQL and SQLite.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_engine.adapters.repositories.base_repository import BaseRepository
from rulebook_engine.domain.entities.rulebook import (
    NewRulebookRule,
    RuleOverride,
    RulebookRule,
    RulebookVersion,
)
from rulebook_engine.infrastructure.database.models.rulebook import (
    RulebookRuleModel,
    RulebookRuleOverrideModel,
    RulebookVersionModel,
)


def _version_to_entity(row: RulebookVersionModel) -> RulebookVersion:
    return RulebookVersion(
        id=row.id,
        tenant_id=row.tenant_id,
        code=row.code,
        name=row.name,
        is_active=row.is_active,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        description=row.description,
    )


def _rule_to_entity(row: RulebookRuleModel) -> RulebookRule:
    return RulebookRule(
        id=row.id,
        tenant_id=row.tenant_id,
        version_id=row.version_id,
        code=row.code,
        title=row.title,
        is_active=row.is_active,
        sort_order=row.sort_order,
        legal_basis=tuple(row.legal_basis or ()),
        match_condition=row.match_condition,
        recurrence=row.recurrence or {},
        due_rule=row.due_rule or {},
        task_template=row.task_template or {},
    )


def _apply_rule(row: RulebookRuleModel, rule: NewRulebookRule) -> None:
    row.title = rule.title
    row.is_active = rule.is_active
    row.sort_order = rule.sort_order
    row.legal_basis = list(rule.legal_basis)
    row.match_condition = dict(rule.match_condition)
    row.recurrence = dict(rule.recurrence)
    row.due_rule = dict(rule.due_rule)
    row.task_template = dict(rule.task_template)


def _override_to_entity(row: RulebookRuleOverrideModel) -> RuleOverride:
    return RuleOverride(
        id=row.id,
        tenant_id=row.tenant_id,
        client_id=row.client_id,
        rule_id=row.rule_id,
        is_enabled=row.is_enabled,
        due_rule_override=row.due_rule_override,
        task_template_override=row.task_template_override,
        reason=row.reason,
    )


class SqlAlchemyRulebookRepository(BaseRepository[RulebookVersionModel]):
    """SQLAlchemy-backed implementation of the rulebook repository contract."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the primary database.
        """
        super().__init__(session=session)

    async def get_active_version(self, tenant_id: str) -> RulebookVersion | None:
        """Return the tenant's active version, if any."""
        stmt = (
            select(RulebookVersionModel)
            .where(
                RulebookVersionModel.tenant_id == tenant_id,
                RulebookVersionModel.is_active.is_(True),
            )
            .limit(1)
        )
        row = await self.fetch_optional(stmt)
        return _version_to_entity(row) if row is not None else None

    async def get_version_by_code(self, tenant_id: str, code: str) -> RulebookVersion | None:
        """Return a version by tenant-scoped code."""
        stmt = (
            select(RulebookVersionModel)
            .where(RulebookVersionModel.tenant_id == tenant_id, RulebookVersionModel.code == code)
            .limit(1)
        )
        row = await self.fetch_optional(stmt)
        return _version_to_entity(row) if row is not None else None

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
        """Insert an inactive version."""
        row = RulebookVersionModel(
            tenant_id=tenant_id,
            code=code,
            name=name,
            description=description,
            is_active=False,
            effective_from=effective_from,
            created_by=created_by,
        )
        self._session.add(row)
        await self._session.flush()
        return _version_to_entity(row)

    async def activate_version(self, tenant_id: str, version_id: str) -> None:
        """Deactivate all other versions of the tenant, then activate ``version_id``.

        Deactivation runs as a separate statement first so the
        one-active-per-tenant unique index never sees two active rows.
        """
        await self._session.execute(
            update(RulebookVersionModel)
            .where(
                RulebookVersionModel.tenant_id == tenant_id,
                RulebookVersionModel.id != version_id,
                RulebookVersionModel.is_active.is_(True),
            )
            .values(is_active=False, updated_at=self.utc_now())
        )
        await self._session.execute(
            update(RulebookVersionModel)
            .where(
                RulebookVersionModel.tenant_id == tenant_id,
                RulebookVersionModel.id == version_id,
            )
            .values(is_active=True, updated_at=self.utc_now())
        )

    async def list_active_rules(self, tenant_id: str, version_id: str) -> Sequence[RulebookRule]:
        """Return active rules ordered by ``sort_order``, creation time, then id."""
        stmt = (
            select(RulebookRuleModel)
            .where(
                RulebookRuleModel.tenant_id == tenant_id,
                RulebookRuleModel.version_id == version_id,
                RulebookRuleModel.is_active.is_(True),
            )
            .order_by(
                RulebookRuleModel.sort_order.asc(),
                RulebookRuleModel.created_at.asc(),
                RulebookRuleModel.id.asc(),
            )
        )
        result = await self._session.execute(stmt)
        return [_rule_to_entity(row) for row in result.scalars().all()]

    async def delete_rules(self, tenant_id: str, version_id: str) -> int:
        """Delete every rule of a version."""
        result = await self._session.execute(
            delete(RulebookRuleModel)
            .where(
                RulebookRuleModel.tenant_id == tenant_id,
                RulebookRuleModel.version_id == version_id,
            )
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def upsert_rules(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rules: Sequence[NewRulebookRule],
        created_by: str | None = None,
    ) -> int:
        """Insert or update rules keyed by (tenant, version, code)."""
        if not rules:
            return 0

        stmt = select(RulebookRuleModel).where(
            RulebookRuleModel.tenant_id == tenant_id,
            RulebookRuleModel.version_id == version_id,
            RulebookRuleModel.code.in_([r.code for r in rules]),
        )
        result = await self._session.execute(stmt)
        existing = {row.code: row for row in result.scalars().all()}

        for rule in rules:
            row = existing.get(rule.code)
            if row is None:
                row = RulebookRuleModel(
                    tenant_id=tenant_id,
                    version_id=version_id,
                    code=rule.code,
                    created_by=created_by,
                )
                self._session.add(row)
                existing[rule.code] = row
            _apply_rule(row, rule)

        await self._session.flush()
        return len(rules)

    async def get_rule(
        self, tenant_id: str, version_id: str, rule_id: str
    ) -> RulebookRule | None:
        """Return one rule of the version, active or not."""
        row = await self._get_rule_row(tenant_id, version_id, rule_id)
        return _rule_to_entity(row) if row is not None else None

    async def get_rule_by_code(
        self, tenant_id: str, version_id: str, code: str
    ) -> RulebookRule | None:
        """Return the rule holding ``code`` within the version."""
        stmt = (
            select(RulebookRuleModel)
            .where(
                RulebookRuleModel.tenant_id == tenant_id,
                RulebookRuleModel.version_id == version_id,
                RulebookRuleModel.code == code,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        row = result.scalars().first()
        return _rule_to_entity(row) if row is not None else None

    async def create_rule(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rule: NewRulebookRule,
        created_by: str | None = None,
    ) -> RulebookRule:
        """Insert one rule into the version."""
        row = RulebookRuleModel(
            tenant_id=tenant_id,
            version_id=version_id,
            code=rule.code,
            created_by=created_by,
        )
        _apply_rule(row, rule)
        self._session.add(row)
        await self._session.flush()
        return _rule_to_entity(row)

    async def update_rule(
        self,
        *,
        tenant_id: str,
        version_id: str,
        rule_id: str,
        rule: NewRulebookRule,
    ) -> RulebookRule | None:
        """Overwrite code and definition of a rule of the version."""
        row = await self._get_rule_row(tenant_id, version_id, rule_id)
        if row is None:
            return None
        row.code = rule.code
        _apply_rule(row, rule)
        await self._session.flush()
        return _rule_to_entity(row)

    async def set_rule_active(
        self, tenant_id: str, version_id: str, rule_id: str, is_active: bool
    ) -> bool:
        """Toggle a rule's active flag."""
        row = await self._get_rule_row(tenant_id, version_id, rule_id)
        if row is None:
            return False
        row.is_active = is_active
        await self._session.flush()
        return True

    async def delete_rule(self, tenant_id: str, version_id: str, rule_id: str) -> bool:
        """Delete one rule of the version."""
        result = await self._session.execute(
            delete(RulebookRuleModel).where(
                RulebookRuleModel.tenant_id == tenant_id,
                RulebookRuleModel.version_id == version_id,
                RulebookRuleModel.id == rule_id,
            )
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def _get_rule_row(
        self, tenant_id: str, version_id: str, rule_id: str
    ) -> RulebookRuleModel | None:
        stmt = (
            select(RulebookRuleModel)
            .where(
                RulebookRuleModel.tenant_id == tenant_id,
                RulebookRuleModel.version_id == version_id,
                RulebookRuleModel.id == rule_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def list_overrides(self, tenant_id: str) -> Sequence[RuleOverride]:
        """Return every rule override of the tenant."""
        stmt = self.order_by_created(
            select(RulebookRuleOverrideModel).where(
                RulebookRuleOverrideModel.tenant_id == tenant_id
            ),
            RulebookRuleOverrideModel.created_at,
            RulebookRuleOverrideModel.id,
        )
        result = await self._session.execute(stmt)
        return [_override_to_entity(row) for row in result.scalars().all()]
