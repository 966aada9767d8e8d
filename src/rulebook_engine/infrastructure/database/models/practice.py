# src/rulebook_engine/infrastructure/database/models/practice.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Practice (host application) models.

Purpose:
    Persistence shape of the host-application tables the rulebook engine
    reads from and writes to: tenants, staff profiles, clients, accountant
    assignments, tasks and the audit log.

Layer:
    infrastructure

Notes:
    The engine owns none of these tables' lifecycles. Columns are limited to
    what generation reads or writes.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from rulebook_engine.infrastructure.database.models.base import BaseEntity, JSONType

#: Text array on PostgreSQL, JSON list elsewhere.
TextListType = JSON().with_variant(ARRAY(Text()), "postgresql")


class Tenant(BaseEntity):
    """Practice (accounting firm) tenant."""

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Profile(BaseEntity):
    """Staff profile of a tenant (admin or accountant)."""

    __tablename__ = "profiles"
    __table_args__ = (Index("ix_profiles_tenant_role", "tenant_id", "role"),)

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    full_name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    role: Mapped[str] = mapped_column(String(length=32), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Client(BaseEntity):
    """Client (taxpayer) served by a tenant."""

    __tablename__ = "clients"
    __table_args__ = (
        CheckConstraint(
            "payroll_frequency IN ('semi_monthly', 'monthly', 'weekly', 'custom')",
            name="payroll_frequency",
        ),
        CheckConstraint("payroll_advance_day BETWEEN 1 AND 31", name="payroll_advance_day"),
        CheckConstraint("payroll_final_day BETWEEN 1 AND 31", name="payroll_final_day"),
        Index("ix_clients_tenant_status", "tenant_id", "status"),
    )

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    client_type: Mapped[str] = mapped_column(String(length=32), nullable=False)
    status: Mapped[str] = mapped_column(String(length=32), nullable=False, default="active")
    tax_system: Mapped[str | None] = mapped_column(String(length=64), nullable=True)
    is_vat_payer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    employee_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    additional_tax_tags: Mapped[list[str] | None] = mapped_column(TextListType, nullable=True)
    timezone: Mapped[str] = mapped_column(String(length=64), nullable=False, default="Europe/Kyiv")
    payroll_frequency: Mapped[str] = mapped_column(
        String(length=32), nullable=False, default="semi_monthly"
    )
    payroll_advance_day: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=15)
    payroll_final_day: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=30)


class ClientAccountant(BaseEntity):
    """Assignment of an accountant to a client."""

    __tablename__ = "client_accountants"
    __table_args__ = (UniqueConstraint("client_id", "accountant_id"),)

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    accountant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Task(BaseEntity):
    """Host task. Generated tasks carry the rule period in ``period``."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_tenant_client_due", "tenant_id", "client_id", "due_date"),
    )

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("clients.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(length=32), nullable=False, default="todo")
    type: Mapped[str] = mapped_column(String(length=32), nullable=False, default="other")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=2)
    assignee_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id"), nullable=True
    )
    created_by: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id"), nullable=False
    )
    recurrence: Mapped[str] = mapped_column(String(length=32), nullable=False, default="none")
    recurrence_days: Mapped[list[int] | None] = mapped_column(JSONType, nullable=True)
    period: Mapped[str | None] = mapped_column(String(length=32), nullable=True)
    proof_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class AuditLogEntry(BaseEntity):
    """Append-only audit trail."""

    __tablename__ = "audit_log"
    __table_args__ = (Index("ix_audit_log_tenant_entity", "tenant_id", "entity", "entity_id"),)

    tenant_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    actor_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    entity: Mapped[str] = mapped_column(String(length=64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(length=64), nullable=False)
    action: Mapped[str] = mapped_column(String(length=64), nullable=False)
    meta: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
