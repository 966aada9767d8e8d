# src/rulebook_engine/infrastructure/database/models/rulebook.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Rulebook Models.

Purpose:
    Provide SQLAlchemy models for versioned rulebooks, their rules, per-client
    rule overrides, the task generation ledger and generation run tracking.

Layer:
    infrastructure

Notes:
    - ``rulebook_task_generations`` carries the idempotency key
      (tenant_id, client_id, rule_id, period_key). Concurrency control for
      generation relies entirely on that unique constraint.
    - A partial unique index keeps at most one active version per tenant.
    - Rule configuration columns hold raw JSON documents; the domain parser
      validates them at generation time.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from rulebook_engine.infrastructure.database.models.base import (
    AuditActorMixin,
    BaseEntity,
    JSONType,
)
from rulebook_engine.infrastructure.database.models.practice import TextListType


class RulebookVersionModel(AuditActorMixin, BaseEntity):
    """Tenant-scoped named rule set."""

    __tablename__ = "rulebook_versions"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code"),
        CheckConstraint(
            "effective_to IS NULL OR effective_to >= effective_from",
            name="effective_range",
        ),
        Index(
            "uq_rulebook_versions_one_active_per_tenant",
            "tenant_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_rulebook_versions_tenant_effective", "tenant_id", "effective_from"),
    )

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(String(length=128), nullable=False)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)


class RulebookRuleModel(AuditActorMixin, BaseEntity):
    """One compliance rule stored as JSON configuration."""

    __tablename__ = "rulebook_rules"
    __table_args__ = (
        UniqueConstraint("tenant_id", "version_id", "code"),
        Index(
            "ix_rulebook_rules_tenant_version_active",
            "tenant_id",
            "version_id",
            "is_active",
            "sort_order",
        ),
    )

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    version_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("rulebook_versions.id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String(length=128), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    match_condition: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    recurrence: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    due_rule: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    task_template: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    legal_basis: Mapped[list[str]] = mapped_column(TextListType, nullable=False, default=list)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=100)


class RulebookRuleOverrideModel(AuditActorMixin, BaseEntity):
    """Per-client customisation of a rule."""

    __tablename__ = "rulebook_rule_overrides"
    __table_args__ = (
        UniqueConstraint("tenant_id", "client_id", "rule_id"),
        Index("ix_rulebook_rule_overrides_tenant_client", "tenant_id", "client_id"),
    )

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    rule_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("rulebook_rules.id", ondelete="CASCADE"), nullable=False
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    due_rule_override: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    task_template_override: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)


class RulebookTaskGenerationModel(BaseEntity):
    """Generation ledger: one row per (tenant, client, rule, period)."""

    __tablename__ = "rulebook_task_generations"
    __table_args__ = (
        UniqueConstraint("tenant_id", "client_id", "rule_id", "period_key"),
        CheckConstraint(
            "status IN ('created', 'linked', 'error')",
            name="status",
        ),
        Index(
            "ix_rulebook_task_generations_tenant_due",
            "tenant_id",
            "scheduled_due_date",
            "status",
        ),
    )

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    rule_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("rulebook_rules.id", ondelete="CASCADE"), nullable=False
    )
    period_key: Mapped[str] = mapped_column(String(length=32), nullable=False)
    scheduled_due_date: Mapped[date] = mapped_column(Date, nullable=False)
    generated_task_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(length=16), nullable=False, default="created")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    generation_context: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )


class RulebookGenerationRunModel(BaseEntity):
    """One non-dry-run generation invocation."""

    __tablename__ = "rulebook_generation_runs"
    __table_args__ = (
        CheckConstraint("status IN ('running', 'completed', 'failed')", name="status"),
        Index("ix_rulebook_generation_runs_tenant_started", "tenant_id", "started_at"),
    )

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    actor_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    from_date: Mapped[date] = mapped_column(Date, nullable=False)
    to_date: Mapped[date] = mapped_column(Date, nullable=False)
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(length=16), nullable=False, default="running")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    summary: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
