# src/rulebook_engine/application/use_cases/rulebook/run_scheduled_generation.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Use case: Run rulebook generation across tenants.

Scope:
    * Pick the tenants to process: an explicit tenant, else the configured
      tenant list, else every active tenant ordered by creation time.
    * Run single-tenant generation for each, sequentially, each in its own
      UnitOfWork.

Behavior:
    * A failing tenant is reported with ``status="error"`` and never stops the
      remaining tenants.
    * Scheduled runs carry no actor; task authorship falls back to the
      tenant's first admin or accountant.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Literal, cast

from rulebook_engine.application.schemas.dto.rulebook import (
    RunRulebookGenerationRequestDTO,
    ScheduledGenerationRequestDTO,
    ScheduledGenerationSummaryDTO,
    TenantGenerationOutcomeDTO,
)
from rulebook_engine.application.uow import UnitOfWork
from rulebook_engine.application.use_cases.rulebook.run_rulebook_task_generation import (
    RunRulebookTaskGenerationUseCase,
)
from rulebook_engine.domain.exceptions.rulebook import GenerationWindowError
from rulebook_engine.domain.interfaces.repositories.practice_directory_repository import (
    PracticeDirectoryRepository as PracticeDirectoryRepositoryPort,
)

logger = logging.getLogger(__name__)

TenantSource = Literal["explicit_tenant", "configured_tenants", "all_active_tenants"]


class RunScheduledGenerationUseCase:
    """Fan generation out over a set of tenants.

    Args:
        uow_factory: Builds a fresh UnitOfWork (used for tenant discovery).
        generation_factory: Builds a single-tenant generation use case bound
            to its own fresh UnitOfWork.
        configured_tenant_ids: Tenants processed when no explicit tenant is given.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], UnitOfWork],
        generation_factory: Callable[[], RunRulebookTaskGenerationUseCase],
        configured_tenant_ids: Sequence[str] = (),
    ) -> None:
        """Initialize the use case."""
        self._uow_factory = uow_factory
        self._generation_factory = generation_factory
        self._configured_tenant_ids = [t for t in configured_tenant_ids if t]

    async def execute(self, req: ScheduledGenerationRequestDTO) -> ScheduledGenerationSummaryDTO:
        """Process every selected tenant and report per-tenant outcomes.

        Raises:
            GenerationWindowError: When both window bounds are given and
                inverted. Checked once, before any tenant is touched.
        """
        if req.from_date and req.to_date and req.to_date < req.from_date:
            raise GenerationWindowError(
                "Generation window is invalid: to_date must be >= from_date.",
                details={
                    "from_date": req.from_date.isoformat(),
                    "to_date": req.to_date.isoformat(),
                },
            )
        source, tenant_ids = await self._select_tenants(req)
        logger.info(
            "rulebook.scheduled.start",
            extra={"source": source, "tenant_count": len(tenant_ids), "dry_run": req.dry_run},
        )

        results: list[TenantGenerationOutcomeDTO] = []
        for tenant_id in tenant_ids:
            results.append(await self._run_tenant(tenant_id, req))

        failed = sum(1 for r in results if r.status == "error")
        logger.info(
            "rulebook.scheduled.finished",
            extra={"source": source, "processed_tenants": len(results), "failed_tenants": failed},
        )
        return ScheduledGenerationSummaryDTO(
            source=source,
            processed_tenants=len(results),
            results=results,
        )

    async def _select_tenants(
        self, req: ScheduledGenerationRequestDTO
    ) -> tuple[TenantSource, list[str]]:
        if req.tenant_id:
            return "explicit_tenant", [req.tenant_id]
        if self._configured_tenant_ids:
            return "configured_tenants", list(self._configured_tenant_ids)

        async with self._uow_factory() as tx:
            repo = cast(
                PracticeDirectoryRepositoryPort,
                tx.get_repository(PracticeDirectoryRepositoryPort),
            )
            tenant_ids = list(await repo.list_active_tenant_ids())
        return "all_active_tenants", tenant_ids

    async def _run_tenant(
        self, tenant_id: str, req: ScheduledGenerationRequestDTO
    ) -> TenantGenerationOutcomeDTO:
        run_req = RunRulebookGenerationRequestDTO(
            tenant_id=tenant_id,
            from_date=req.from_date,
            to_date=req.to_date,
            holidays=list(req.holidays),
            dry_run=req.dry_run,
            force_retry_without_linked_task=req.force_retry_without_linked_task,
        )
        try:
            summary = await self._generation_factory().execute(run_req)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "rulebook.scheduled.tenant_failed",
                extra={"tenant_id": tenant_id, "error": str(exc) or exc.__class__.__name__},
            )
            return TenantGenerationOutcomeDTO(
                tenant_id=tenant_id,
                status="error",
                detail=str(exc) or exc.__class__.__name__,
            )
        return TenantGenerationOutcomeDTO(tenant_id=tenant_id, status="ok", summary=summary)
