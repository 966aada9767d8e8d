# src/rulebook_engine/adapters/routers/internal_rulebook_router.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Internal rulebook trigger endpoints.

Routes:
    POST /internal/rulebook/generate
        Run generation for one tenant (``tenant_id`` in the body) or for the
        scheduled tenant set. Intended for cron callers.
    POST /internal/rulebook/init
        Seed the default rulebook into a tenant.
    PUT /internal/rulebook/rules
        Create or update one rule of the tenant's active version.
    POST /internal/rulebook/rules/active
        Activate or deactivate one rule.
    POST /internal/rulebook/rules/delete
        Deactivate a rule, or remove it with ``hard_delete``.

Security:
    Every route requires the shared cron secret, supplied either as
    ``X-Cron-Secret`` or as ``Authorization: Bearer <secret>``. When no secret
    is configured every request is rejected.

Layer:
    adapters/routers
"""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from rulebook_engine.application.schemas.dto.rulebook import (
    DeleteRulebookRuleRequestDTO,
    InitRulebookRequestDTO,
    InitRulebookSummaryDTO,
    RulebookRuleChangeDTO,
    ScheduledGenerationRequestDTO,
    ScheduledGenerationSummaryDTO,
    SetRulebookRuleActiveRequestDTO,
    UpsertRulebookRuleRequestDTO,
    UpsertRulebookRuleResultDTO,
)
from rulebook_engine.config.settings import Settings
from rulebook_engine.dependencies.rulebook import (
    UowFactory,
    build_delete_rule_use_case,
    build_init_use_case,
    build_scheduled_generation_use_case,
    build_set_rule_active_use_case,
    build_upsert_rule_use_case,
    get_settings_dependency,
    get_uow_factory,
)
from rulebook_engine.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

CRON_SECRET_HEADER = "X-Cron-Secret"


def _presented_secret(request: Request) -> str | None:
    header = request.headers.get(CRON_SECRET_HEADER)
    if header:
        return header.strip()
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


def require_cron_secret(
    request: Request,
    settings: Settings = Depends(get_settings_dependency),
) -> None:
    """Reject the request unless it carries the configured cron secret.

    Raises:
        HTTPException: 401 when the secret is missing, wrong or not configured.
    """
    expected = settings.cron_secret.get_secret_value() if settings.cron_secret else ""
    presented = _presented_secret(request)
    if not expected or presented is None or not hmac.compare_digest(presented, expected):
        logger.warning(
            "rulebook.internal.unauthorized",
            extra={"path": request.url.path, "secret_configured": bool(expected)},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


router = APIRouter(
    prefix="/internal/rulebook",
    tags=["internal"],
    dependencies=[Depends(require_cron_secret)],
)


@router.post("/generate", response_model=ScheduledGenerationSummaryDTO)
async def generate(
    body: ScheduledGenerationRequestDTO | None = Body(default=None),
    settings: Settings = Depends(get_settings_dependency),
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> ScheduledGenerationSummaryDTO:
    """Run generation for an explicit tenant or the scheduled tenant set."""
    req = body or ScheduledGenerationRequestDTO()
    use_case = build_scheduled_generation_use_case(settings, uow_factory)
    return await use_case.execute(req)


@router.post("/init", response_model=InitRulebookSummaryDTO)
async def init_rulebook(
    body: InitRulebookRequestDTO,
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> InitRulebookSummaryDTO:
    """Create or refresh the tenant's rulebook from the built-in catalog."""
    return await build_init_use_case(uow_factory).execute(body)


@router.put("/rules", response_model=UpsertRulebookRuleResultDTO)
async def upsert_rule(
    body: UpsertRulebookRuleRequestDTO,
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> UpsertRulebookRuleResultDTO:
    """Create a rule in the active version, or update the one named by ``rule_id``."""
    return await build_upsert_rule_use_case(uow_factory).execute(body)


@router.post("/rules/active", response_model=RulebookRuleChangeDTO)
async def set_rule_active(
    body: SetRulebookRuleActiveRequestDTO,
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> RulebookRuleChangeDTO:
    return await build_set_rule_active_use_case(uow_factory).execute(body)


@router.post("/rules/delete", response_model=RulebookRuleChangeDTO)
async def delete_rule(
    body: DeleteRulebookRuleRequestDTO,
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> RulebookRuleChangeDTO:
    """Deactivate a rule, or remove it (and its overrides and ledger rows) with ``hard_delete``."""
    return await build_delete_rule_use_case(uow_factory).execute(body)
