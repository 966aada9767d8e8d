# src/rulebook_engine/application/use_cases/rulebook/manage_rulebook_rules.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Use cases: Edit individual rules of a tenant's active rulebook version.

Scope:
    * Create or update one rule (``UpsertRulebookRuleUseCase``).
    * Toggle a rule's active flag (``SetRulebookRuleActiveUseCase``).
    * Soft or hard delete a rule (``DeleteRulebookRuleUseCase``).

Behavior:
    * Every operation targets the tenant's active version and fails with
      ``RulebookNoActiveVersionError`` when there is none.
    * Rule ids are scoped to (tenant, active version); an id from another
      version or tenant is reported as ``RulebookRuleNotFoundError``.
    * Definitions are validated with the same parser generation uses, so a
      stored rule is always actionable when it is saved.
    * Each operation runs in one transaction.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any, cast
from uuid import uuid4

from rulebook_engine.application.schemas.dto.rulebook import (
    DeleteRulebookRuleRequestDTO,
    RulebookRuleChangeDTO,
    SetRulebookRuleActiveRequestDTO,
    UpsertRulebookRuleRequestDTO,
    UpsertRulebookRuleResultDTO,
)
from rulebook_engine.application.uow import UnitOfWork, run_in_uow
from rulebook_engine.domain.entities.rule_config import InvalidCondition
from rulebook_engine.domain.entities.rulebook import NewRulebookRule, RulebookVersion
from rulebook_engine.domain.exceptions.rulebook import (
    RulebookNoActiveVersionError,
    RulebookRuleConflictError,
    RulebookRuleInvalidError,
    RulebookRuleNotFoundError,
)
from rulebook_engine.domain.interfaces.repositories.rulebook_repository import (
    RulebookRepository as RulebookRepositoryPort,
)
from rulebook_engine.domain.services.rule_config_parser import (
    parse_condition,
    parse_due_rule,
    parse_recurrence,
    parse_task_template,
)

logger = logging.getLogger(__name__)

MANUAL_CODE_PREFIX = "manual"
MAX_CODE_SLUG_LENGTH = 36

_NON_SLUG = re.compile(r"[^\w\s-]+")
_WHITESPACE = re.compile(r"\s+")
_UNDERSCORES = re.compile(r"_+")


def build_rule_code(title: str, suffix: str | None = None) -> str:
    """Derive a rule code from a title.

    Example:
        >>> build_rule_code("Pay VAT (monthly)", suffix="a1b2c3")
        'manual_pay_vat_monthly_a1b2c3'
        >>> build_rule_code("!!!", suffix="a1b2c3")
        'manual_rule_a1b2c3'
    """
    slug = _NON_SLUG.sub(" ", title.lower()).strip()
    slug = _UNDERSCORES.sub("_", _WHITESPACE.sub("_", slug))[:MAX_CODE_SLUG_LENGTH]
    tail = suffix or uuid4().hex[:6]
    base = f"{MANUAL_CODE_PREFIX}_{slug}" if slug else f"{MANUAL_CODE_PREFIX}_rule"
    return f"{base}_{tail}"


def validate_rule_definition(req: UpsertRulebookRuleRequestDTO) -> None:
    """Reject definitions the generator would never act on.

    Raises:
        RulebookRuleInvalidError: Lists every unparsable part in ``details``.
    """
    invalid: list[str] = []
    if parse_recurrence(req.recurrence) is None:
        invalid.append("recurrence")
    if parse_due_rule(req.due_rule) is None:
        invalid.append("due_rule")
    if parse_task_template(req.task_template) is None:
        invalid.append("task_template")
    if isinstance(parse_condition(req.match_condition), InvalidCondition):
        invalid.append("match_condition")
    if invalid:
        raise RulebookRuleInvalidError(
            "Rule definition is not valid.",
            details={"tenant_id": req.tenant_id, "fields": invalid},
        )


async def _require_active_version(
    repo: RulebookRepositoryPort, tenant_id: str
) -> RulebookVersion:
    version = await repo.get_active_version(tenant_id)
    if version is None:
        raise RulebookNoActiveVersionError(
            "Tenant has no active rulebook version; initialize the rulebook first.",
            details={"tenant_id": tenant_id},
        )
    return version


def _not_found(
    tenant_id: str, version: RulebookVersion, rule_id: str
) -> RulebookRuleNotFoundError:
    return RulebookRuleNotFoundError(
        "Rule not found in the active rulebook version.",
        details={"tenant_id": tenant_id, "version_id": version.id, "rule_id": rule_id},
    )


class UpsertRulebookRuleUseCase:
    """Create a rule in the active version, or update one by id.

    Args:
        uow: Application UnitOfWork.
        code_factory: Builds a code from a title for new rules without one.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        code_factory: Callable[[str], str] = build_rule_code,
    ) -> None:
        self._uow = uow
        self._code_factory = code_factory

    async def execute(self, req: UpsertRulebookRuleRequestDTO) -> UpsertRulebookRuleResultDTO:
        """Validate and persist one rule.

        Raises:
            RulebookRuleInvalidError: Unparsable recurrence, due rule, template or condition.
            RulebookNoActiveVersionError: The tenant has no active version.
            RulebookRuleNotFoundError: ``rule_id`` is not in the active version.
            RulebookRuleConflictError: ``code`` belongs to another rule of the version.
        """
        validate_rule_definition(req)

        async def _work(tx: UnitOfWork) -> UpsertRulebookRuleResultDTO:
            repo = _get_rulebook_repo(tx)
            version = await _require_active_version(repo, req.tenant_id)
            if req.rule_id is None:
                return await self._create(repo, version, req)
            return await self._update(repo, version, req.rule_id, req)

        result = await run_in_uow(self._uow, _work)
        logger.info(
            "rulebook.rule.upserted",
            extra={"tenant_id": req.tenant_id, "rule_id": result.id, "mode": result.mode},
        )
        return result

    async def _create(
        self,
        repo: RulebookRepositoryPort,
        version: RulebookVersion,
        req: UpsertRulebookRuleRequestDTO,
    ) -> UpsertRulebookRuleResultDTO:
        code = req.code or self._code_factory(req.title)
        await self._ensure_code_free(repo, version, code, rule_id=None, tenant_id=req.tenant_id)
        rule = await repo.create_rule(
            tenant_id=req.tenant_id,
            version_id=version.id,
            rule=_new_rule(req, code),
            created_by=req.actor_profile_id,
        )
        return UpsertRulebookRuleResultDTO(id=rule.id, code=rule.code, mode="created")

    async def _update(
        self,
        repo: RulebookRepositoryPort,
        version: RulebookVersion,
        rule_id: str,
        req: UpsertRulebookRuleRequestDTO,
    ) -> UpsertRulebookRuleResultDTO:
        current = await repo.get_rule(req.tenant_id, version.id, rule_id)
        if current is None:
            raise _not_found(req.tenant_id, version, rule_id)
        code = req.code or current.code
        if code != current.code:
            await self._ensure_code_free(
                repo, version, code, rule_id=rule_id, tenant_id=req.tenant_id
            )
        rule = await repo.update_rule(
            tenant_id=req.tenant_id,
            version_id=version.id,
            rule_id=rule_id,
            rule=_new_rule(req, code),
        )
        if rule is None:
            raise _not_found(req.tenant_id, version, rule_id)
        return UpsertRulebookRuleResultDTO(id=rule.id, code=rule.code, mode="updated")

    @staticmethod
    async def _ensure_code_free(
        repo: RulebookRepositoryPort,
        version: RulebookVersion,
        code: str,
        *,
        rule_id: str | None,
        tenant_id: str,
    ) -> None:
        holder = await repo.get_rule_by_code(tenant_id, version.id, code)
        if holder is not None and holder.id != rule_id:
            raise RulebookRuleConflictError(
                "Rule code is already used in the active rulebook version.",
                details={"tenant_id": tenant_id, "code": code, "rule_id": holder.id},
            )


class SetRulebookRuleActiveUseCase:
    """Activate or deactivate one rule of the active version."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: SetRulebookRuleActiveRequestDTO) -> RulebookRuleChangeDTO:
        async def _work(tx: UnitOfWork) -> RulebookRuleChangeDTO:
            repo = _get_rulebook_repo(tx)
            version = await _require_active_version(repo, req.tenant_id)
            found = await repo.set_rule_active(
                req.tenant_id, version.id, req.rule_id, req.is_active
            )
            if not found:
                raise _not_found(req.tenant_id, version, req.rule_id)
            return RulebookRuleChangeDTO(id=req.rule_id, is_active=req.is_active)

        result = await run_in_uow(self._uow, _work)
        logger.info(
            "rulebook.rule.toggled",
            extra={"tenant_id": req.tenant_id, "rule_id": req.rule_id, "is_active": req.is_active},
        )
        return result


class DeleteRulebookRuleUseCase:
    """Deactivate a rule of the active version, or remove it with ``hard_delete``.

    A hard delete cascades to the rule's overrides and generation ledger rows.
    """

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: DeleteRulebookRuleRequestDTO) -> RulebookRuleChangeDTO:
        async def _work(tx: UnitOfWork) -> RulebookRuleChangeDTO:
            repo = _get_rulebook_repo(tx)
            version = await _require_active_version(repo, req.tenant_id)
            if req.hard_delete:
                found = await repo.delete_rule(req.tenant_id, version.id, req.rule_id)
            else:
                found = await repo.set_rule_active(req.tenant_id, version.id, req.rule_id, False)
            if not found:
                raise _not_found(req.tenant_id, version, req.rule_id)
            return RulebookRuleChangeDTO(id=req.rule_id, is_active=False, deleted=req.hard_delete)

        result = await run_in_uow(self._uow, _work)
        logger.info(
            "rulebook.rule.deleted",
            extra={"tenant_id": req.tenant_id, "rule_id": req.rule_id, "hard": req.hard_delete},
        )
        return result


def _new_rule(req: UpsertRulebookRuleRequestDTO, code: str) -> NewRulebookRule:
    return NewRulebookRule(
        code=code,
        title=req.title,
        sort_order=req.sort_order,
        legal_basis=tuple(req.legal_basis),
        match_condition=req.match_condition,
        recurrence=req.recurrence,
        due_rule=req.due_rule,
        task_template=req.task_template,
        is_active=req.is_active,
    )


def _get_rulebook_repo(tx: Any) -> RulebookRepositoryPort:
    if hasattr(tx, "rulebook_repo"):
        return cast(RulebookRepositoryPort, tx.rulebook_repo)
    return cast(RulebookRepositoryPort, tx.get_repository(RulebookRepositoryPort))
