# src/rulebook_engine/application/schemas/dto/rulebook.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Application DTOs for rulebook generation, initialisation and rule management.

Purpose:
    Provide strict Pydantic DTOs used by rulebook use cases and the thin
    CLI/HTTP adapters in front of them. These DTOs are transport-agnostic.

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import Field

from rulebook_engine.application.schemas.dto.base import BaseDTO


class RunRulebookGenerationRequestDTO(BaseDTO):
    """Request DTO for one tenant's generation run.

    Attributes:
        tenant_id: Tenant to generate tasks for.
        actor_profile_id: Profile attributed as task author and audit actor.
        from_date: Window start. Defaults to today (UTC).
        to_date: Window end. Defaults to ``from_date`` plus the configured window.
        holidays: Additional non-business days.
        dry_run: Evaluate and count without writing anything.
        force_retry_without_linked_task: Retry ledger rows that never got a task.
    """

    tenant_id: str = Field(min_length=1)
    actor_profile_id: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    holidays: list[date] = Field(default_factory=list)
    dry_run: bool = False
    force_retry_without_linked_task: bool = False


class ActiveVersionDTO(BaseDTO):
    """Identity of the rulebook version a run used."""

    id: str
    code: str


class GenerationErrorDTO(BaseDTO):
    """Candidate-level failure reported in a run summary."""

    client_id: str
    rule_code: str
    period_key: str
    message: str


class GenerationSummaryDTO(BaseDTO):
    """Outcome counters of one generation run."""

    tenant_id: str
    dry_run: bool
    from_date: date
    to_date: date
    active_version: ActiveVersionDTO | None = None
    processed_clients: int = 0
    evaluated_rules: int = 0
    matched_candidates: int = 0
    created_tasks: int = 0
    linked_existing_tasks: int = 0
    skipped_already_generated: int = 0
    skipped_by_condition: int = 0
    skipped_no_assignee: int = 0
    errors: list[GenerationErrorDTO] = Field(default_factory=list)


class InitRulebookRequestDTO(BaseDTO):
    """Request DTO for seeding the default rulebook into a tenant.

    Attributes:
        tenant_id: Target tenant.
        actor_profile_id: Recorded as ``created_by`` on new rows.
        version_code: Version to create or update. Defaults to the catalog version.
        version_name: Name for a newly created version.
        version_description: Description for a newly created version.
        effective_from: Effective date for a newly created version.
        activate_version: Make the version the tenant's only active one.
        replace_rules: Delete the version's rules before seeding.
    """

    tenant_id: str = Field(min_length=1)
    actor_profile_id: str | None = None
    version_code: str | None = None
    version_name: str | None = None
    version_description: str | None = None
    effective_from: date | None = None
    activate_version: bool = True
    replace_rules: bool = False


class InitRulebookSummaryDTO(BaseDTO):
    """Outcome of a rulebook initialisation."""

    tenant_id: str
    version_id: str
    version_code: str
    created_version: bool
    activated_version: bool
    replace_rules: bool
    upserted_rules: int


class ScheduledGenerationRequestDTO(BaseDTO):
    """Request DTO for a multi-tenant generation run.

    When ``tenant_id`` is omitted the configured tenant list is used, or every
    active tenant when that list is empty.
    """

    tenant_id: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    holidays: list[date] = Field(default_factory=list)
    dry_run: bool = False
    force_retry_without_linked_task: bool = False


class TenantGenerationOutcomeDTO(BaseDTO):
    """Per-tenant result of a scheduled run."""

    tenant_id: str
    status: Literal["ok", "error"]
    summary: GenerationSummaryDTO | None = None
    detail: str | None = None


class ScheduledGenerationSummaryDTO(BaseDTO):
    """Outcome of a scheduled multi-tenant run."""

    source: Literal["explicit_tenant", "configured_tenants", "all_active_tenants"]
    processed_tenants: int
    results: list[TenantGenerationOutcomeDTO] = Field(default_factory=list)


class UpsertRulebookRuleRequestDTO(BaseDTO):
    """Request DTO for creating or editing one rule of the active version.

    Attributes:
        tenant_id: Owning tenant.
        actor_profile_id: Recorded as ``created_by`` on new rules.
        rule_id: Rule to edit. Omit to create a new rule.
        code: Stable rule code. Generated from the title for new rules when
            omitted; an edit without a code keeps the current one.
        title: Rule title.
        is_active: Whether generation loads the rule.
        sort_order: Processing order within a client.
        legal_basis: Citations appended to generated task descriptions.
        match_condition: Condition tree; empty matches every client.
        recurrence: Recurrence blob.
        due_rule: Due-date policy blob.
        task_template: Task template blob.
    """

    tenant_id: str = Field(min_length=1)
    actor_profile_id: str | None = None
    rule_id: str | None = None
    code: str | None = Field(default=None, min_length=1, max_length=120)
    title: str = Field(min_length=1)
    is_active: bool = True
    sort_order: int = 100
    legal_basis: list[str] = Field(default_factory=list)
    match_condition: dict[str, Any] = Field(default_factory=dict)
    recurrence: dict[str, Any]
    due_rule: dict[str, Any]
    task_template: dict[str, Any]


class UpsertRulebookRuleResultDTO(BaseDTO):
    """Outcome of a rule upsert."""

    id: str
    code: str
    mode: Literal["created", "updated"]


class SetRulebookRuleActiveRequestDTO(BaseDTO):
    """Request DTO for toggling a rule of the active version."""

    tenant_id: str = Field(min_length=1)
    rule_id: str = Field(min_length=1)
    is_active: bool


class DeleteRulebookRuleRequestDTO(BaseDTO):
    """Request DTO for removing a rule of the active version.

    A soft delete only deactivates the rule so ledger history keeps its
    reference; ``hard_delete`` removes the row.
    """

    tenant_id: str = Field(min_length=1)
    rule_id: str = Field(min_length=1)
    hard_delete: bool = False


class RulebookRuleChangeDTO(BaseDTO):
    """Outcome of a toggle or delete."""

    id: str
    is_active: bool
    deleted: bool = False
