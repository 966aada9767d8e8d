# src/rulebook_engine/application/use_cases/rulebook/init_rulebook_for_tenant.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Use case: Seed the default rulebook into a tenant.

Scope:
    * Fetch the requested version by code, or create it (inactive).
    * Optionally delete the version's existing rules.
    * Upsert the built-in rule catalog keyed by (tenant, version, code).
    * Optionally make the version the tenant's only active one.

Behavior:
    * Idempotent: rerunning with the same arguments rewrites the same rules
      and leaves exactly one active version.
    * All writes happen in one transaction; any failure rolls everything back
      and surfaces as ``RulebookInitError``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, cast

from rulebook_engine.application.schemas.dto.rulebook import (
    InitRulebookRequestDTO,
    InitRulebookSummaryDTO,
)
from rulebook_engine.application.uow import UnitOfWork, run_in_uow
from rulebook_engine.domain.entities.rulebook import NewRulebookRule
from rulebook_engine.domain.exceptions.rulebook import RulebookInitError
from rulebook_engine.domain.interfaces.repositories.rulebook_repository import (
    RulebookRepository as RulebookRepositoryPort,
)
from rulebook_engine.domain.services.default_rules import (
    DEFAULT_RULEBOOK_RULES,
    DEFAULT_RULEBOOK_VERSION,
)

logger = logging.getLogger(__name__)


class InitRulebookForTenantUseCase:
    """Create or refresh a tenant's rulebook from the built-in catalog.

    Args:
        uow: Application UnitOfWork.
        rules: Rule catalog to seed. Defaults to ``DEFAULT_RULEBOOK_RULES``.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        rules: Sequence[NewRulebookRule] = DEFAULT_RULEBOOK_RULES,
    ) -> None:
        """Initialize the use case."""
        self._uow = uow
        self._rules = tuple(rules)

    async def execute(self, req: InitRulebookRequestDTO) -> InitRulebookSummaryDTO:
        """Seed the rulebook for ``req.tenant_id``.

        Raises:
            RulebookInitError: If any read or write fails.
        """
        logger.info(
            "rulebook.init.start",
            extra={
                "tenant_id": req.tenant_id,
                "version_code": req.version_code or DEFAULT_RULEBOOK_VERSION.code,
                "replace_rules": req.replace_rules,
                "activate_version": req.activate_version,
            },
        )

        async def _work(tx: UnitOfWork) -> InitRulebookSummaryDTO:
            return await self._seed(_get_rulebook_repo(tx), req)

        try:
            summary = await run_in_uow(self._uow, _work)
        except Exception as exc:  # noqa: BLE001
            logger.exception("rulebook.init.failed", extra={"tenant_id": req.tenant_id})
            raise RulebookInitError(
                "Failed to initialize tenant rulebook.",
                details={"tenant_id": req.tenant_id, "error": str(exc) or exc.__class__.__name__},
            ) from exc

        logger.info("rulebook.init.success", extra=summary.model_dump(mode="json"))
        return summary

    async def _seed(
        self, repo: RulebookRepositoryPort, req: InitRulebookRequestDTO
    ) -> InitRulebookSummaryDTO:
        code = req.version_code or DEFAULT_RULEBOOK_VERSION.code
        version = await repo.get_version_by_code(req.tenant_id, code)
        created_version = version is None
        if version is None:
            version = await repo.create_version(
                tenant_id=req.tenant_id,
                code=code,
                name=req.version_name or DEFAULT_RULEBOOK_VERSION.name,
                description=(
                    req.version_description
                    if req.version_description is not None
                    else DEFAULT_RULEBOOK_VERSION.description
                ),
                effective_from=req.effective_from or DEFAULT_RULEBOOK_VERSION.effective_from,
                created_by=req.actor_profile_id,
            )

        if req.replace_rules:
            await repo.delete_rules(req.tenant_id, version.id)

        upserted = await repo.upsert_rules(
            tenant_id=req.tenant_id,
            version_id=version.id,
            rules=self._rules,
            created_by=req.actor_profile_id,
        )

        if req.activate_version:
            await repo.activate_version(req.tenant_id, version.id)

        return InitRulebookSummaryDTO(
            tenant_id=req.tenant_id,
            version_id=version.id,
            version_code=version.code,
            created_version=created_version,
            activated_version=req.activate_version,
            replace_rules=req.replace_rules,
            upserted_rules=upserted,
        )


def _get_rulebook_repo(tx: Any) -> RulebookRepositoryPort:
    if hasattr(tx, "rulebook_repo"):
        return cast(RulebookRepositoryPort, tx.rulebook_repo)
    return cast(RulebookRepositoryPort, tx.get_repository(RulebookRepositoryPort))
