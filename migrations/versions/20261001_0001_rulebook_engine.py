"""Create practice and rulebook tables.

Revision ID: 20261001_0001_rulebook_engine
Revises:
Create Date: 2026-10-01

Creates the host practice tables the engine reads and writes (tenants,
profiles, clients, client_accountants, tasks, audit_log) and the rulebook
tables: versions, rules, per-client overrides, the task generation ledger and
generation runs.

The ledger's unique key (tenant_id, client_id, rule_id, period_key) is the only
concurrency control for generation. A partial unique index keeps at most one
active rulebook version per tenant.
"""

from __future__ import annotations

import os
from collections.abc import Sequence

from alembic import op
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKeyConstraint,
    Integer,
    PrimaryKeyConstraint,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "20261001_0001_rulebook_engine"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

SCHEMA: str | None = os.getenv("DB_SCHEMA") or None


def _ref(table: str) -> str:
    return f"{SCHEMA}.{table}.id" if SCHEMA else f"{table}.id"


def _base_columns() -> list[Column]:
    return [
        Column("id", UUID(as_uuid=False), nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("now()")),
        Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("now()")),
    ]


def _tenant_fk(table: str) -> ForeignKeyConstraint:
    return ForeignKeyConstraint(
        ["tenant_id"],
        [_ref("tenants")],
        name=f"fk_{table}_tenant_id_tenants",
        ondelete="CASCADE",
    )


def upgrade() -> None:
    """Create the practice and rulebook tables with their indexes."""
    if SCHEMA:
        op.execute(f'CREATE SCHEMA IF NOT EXISTS "{SCHEMA}"')

    # ------------------------------------------------------------------ practice
    op.create_table(
        "tenants",
        *_base_columns(),
        Column("name", String(length=255), nullable=False),
        Column("is_active", Boolean, nullable=False, server_default=text("true")),
        PrimaryKeyConstraint("id", name="pk_tenants"),
        schema=SCHEMA,
    )

    op.create_table(
        "profiles",
        *_base_columns(),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("full_name", String(length=255), nullable=True),
        Column("role", String(length=32), nullable=False),
        Column("is_active", Boolean, nullable=False, server_default=text("true")),
        PrimaryKeyConstraint("id", name="pk_profiles"),
        _tenant_fk("profiles"),
        schema=SCHEMA,
    )
    op.create_index("ix_profiles_tenant_role", "profiles", ["tenant_id", "role"], schema=SCHEMA)

    op.create_table(
        "clients",
        *_base_columns(),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("name", String(length=255), nullable=False),
        Column("client_type", String(length=32), nullable=False),
        Column("status", String(length=32), nullable=False, server_default="active"),
        Column("tax_system", String(length=64), nullable=True),
        Column("is_vat_payer", Boolean, nullable=False, server_default=text("false")),
        Column("employee_count", Integer, nullable=True),
        Column("additional_tax_tags", ARRAY(Text()), nullable=True),
        Column("timezone", String(length=64), nullable=False, server_default="Europe/Kyiv"),
        Column("payroll_frequency", String(length=32), nullable=False, server_default="semi_monthly"),
        Column("payroll_advance_day", SmallInteger, nullable=False, server_default="15"),
        Column("payroll_final_day", SmallInteger, nullable=False, server_default="30"),
        PrimaryKeyConstraint("id", name="pk_clients"),
        _tenant_fk("clients"),
        CheckConstraint(
            "payroll_frequency IN ('semi_monthly', 'monthly', 'weekly', 'custom')",
            name="ck_clients_payroll_frequency",
        ),
        CheckConstraint(
            "payroll_advance_day BETWEEN 1 AND 31", name="ck_clients_payroll_advance_day"
        ),
        CheckConstraint("payroll_final_day BETWEEN 1 AND 31", name="ck_clients_payroll_final_day"),
        schema=SCHEMA,
    )
    op.create_index("ix_clients_tenant_status", "clients", ["tenant_id", "status"], schema=SCHEMA)

    op.create_table(
        "client_accountants",
        *_base_columns(),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("client_id", UUID(as_uuid=False), nullable=False),
        Column("accountant_id", UUID(as_uuid=False), nullable=False),
        Column("is_primary", Boolean, nullable=False, server_default=text("false")),
        PrimaryKeyConstraint("id", name="pk_client_accountants"),
        _tenant_fk("client_accountants"),
        ForeignKeyConstraint(
            ["client_id"],
            [_ref("clients")],
            name="fk_client_accountants_client_id_clients",
            ondelete="CASCADE",
        ),
        ForeignKeyConstraint(
            ["accountant_id"],
            [_ref("profiles")],
            name="fk_client_accountants_accountant_id_profiles",
            ondelete="CASCADE",
        ),
        UniqueConstraint(
            "client_id", "accountant_id", name="uq_client_accountants_client_id"
        ),
        schema=SCHEMA,
    )

    op.create_table(
        "tasks",
        *_base_columns(),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("client_id", UUID(as_uuid=False), nullable=True),
        Column("title", Text, nullable=False),
        Column("description", Text, nullable=True),
        Column("status", String(length=32), nullable=False, server_default="todo"),
        Column("type", String(length=32), nullable=False, server_default="other"),
        Column("due_date", Date, nullable=True),
        Column("priority", SmallInteger, nullable=False, server_default="2"),
        Column("assignee_id", UUID(as_uuid=False), nullable=True),
        Column("created_by", UUID(as_uuid=False), nullable=False),
        Column("recurrence", String(length=32), nullable=False, server_default="none"),
        Column("recurrence_days", JSONB, nullable=True),
        Column("period", String(length=32), nullable=True),
        Column("proof_required", Boolean, nullable=False, server_default=text("false")),
        PrimaryKeyConstraint("id", name="pk_tasks"),
        _tenant_fk("tasks"),
        ForeignKeyConstraint(
            ["client_id"], [_ref("clients")], name="fk_tasks_client_id_clients", ondelete="CASCADE"
        ),
        ForeignKeyConstraint(["assignee_id"], [_ref("profiles")], name="fk_tasks_assignee_id_profiles"),
        ForeignKeyConstraint(["created_by"], [_ref("profiles")], name="fk_tasks_created_by_profiles"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_tasks_tenant_client_due", "tasks", ["tenant_id", "client_id", "due_date"], schema=SCHEMA
    )

    op.create_table(
        "audit_log",
        *_base_columns(),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("actor_id", UUID(as_uuid=False), nullable=True),
        Column("entity", String(length=64), nullable=False),
        Column("entity_id", String(length=64), nullable=False),
        Column("action", String(length=64), nullable=False),
        Column("meta", JSONB, nullable=False, server_default=text("'{}'::jsonb")),
        PrimaryKeyConstraint("id", name="pk_audit_log"),
        _tenant_fk("audit_log"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_audit_log_tenant_entity",
        "audit_log",
        ["tenant_id", "entity", "entity_id"],
        schema=SCHEMA,
    )

    # ------------------------------------------------------------------ rulebook
    op.create_table(
        "rulebook_versions",
        *_base_columns(),
        Column("created_by", UUID(as_uuid=False), nullable=True),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("code", String(length=128), nullable=False),
        Column("name", String(length=255), nullable=False),
        Column("description", Text, nullable=True),
        Column("is_active", Boolean, nullable=False, server_default=text("false")),
        Column("effective_from", Date, nullable=False),
        Column("effective_to", Date, nullable=True),
        PrimaryKeyConstraint("id", name="pk_rulebook_versions"),
        _tenant_fk("rulebook_versions"),
        UniqueConstraint("tenant_id", "code", name="uq_rulebook_versions_tenant_id"),
        CheckConstraint(
            "effective_to IS NULL OR effective_to >= effective_from",
            name="ck_rulebook_versions_effective_range",
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "uq_rulebook_versions_one_active_per_tenant",
        "rulebook_versions",
        ["tenant_id"],
        unique=True,
        postgresql_where=text("is_active"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_rulebook_versions_tenant_effective",
        "rulebook_versions",
        ["tenant_id", "effective_from"],
        schema=SCHEMA,
    )

    op.create_table(
        "rulebook_rules",
        *_base_columns(),
        Column("created_by", UUID(as_uuid=False), nullable=True),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("version_id", UUID(as_uuid=False), nullable=False),
        Column("code", String(length=128), nullable=False),
        Column("title", Text, nullable=False),
        Column("is_active", Boolean, nullable=False, server_default=text("true")),
        Column("match_condition", JSONB, nullable=False, server_default=text("'{}'::jsonb")),
        Column("recurrence", JSONB, nullable=False),
        Column("due_rule", JSONB, nullable=False),
        Column("task_template", JSONB, nullable=False),
        Column("legal_basis", ARRAY(Text()), nullable=False, server_default=text("'{}'::text[]")),
        Column("sort_order", Integer, nullable=False, server_default="100"),
        PrimaryKeyConstraint("id", name="pk_rulebook_rules"),
        _tenant_fk("rulebook_rules"),
        ForeignKeyConstraint(
            ["version_id"],
            [_ref("rulebook_versions")],
            name="fk_rulebook_rules_version_id_rulebook_versions",
            ondelete="CASCADE",
        ),
        UniqueConstraint("tenant_id", "version_id", "code", name="uq_rulebook_rules_tenant_id"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_rulebook_rules_tenant_version_active",
        "rulebook_rules",
        ["tenant_id", "version_id", "is_active", "sort_order"],
        schema=SCHEMA,
    )

    op.create_table(
        "rulebook_rule_overrides",
        *_base_columns(),
        Column("created_by", UUID(as_uuid=False), nullable=True),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("client_id", UUID(as_uuid=False), nullable=False),
        Column("rule_id", UUID(as_uuid=False), nullable=False),
        Column("is_enabled", Boolean, nullable=False, server_default=text("true")),
        Column("due_rule_override", JSONB, nullable=True),
        Column("task_template_override", JSONB, nullable=True),
        Column("reason", Text, nullable=True),
        PrimaryKeyConstraint("id", name="pk_rulebook_rule_overrides"),
        _tenant_fk("rulebook_rule_overrides"),
        ForeignKeyConstraint(
            ["client_id"],
            [_ref("clients")],
            name="fk_rulebook_rule_overrides_client_id_clients",
            ondelete="CASCADE",
        ),
        ForeignKeyConstraint(
            ["rule_id"],
            [_ref("rulebook_rules")],
            name="fk_rulebook_rule_overrides_rule_id_rulebook_rules",
            ondelete="CASCADE",
        ),
        UniqueConstraint(
            "tenant_id", "client_id", "rule_id", name="uq_rulebook_rule_overrides_tenant_id"
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_rulebook_rule_overrides_tenant_client",
        "rulebook_rule_overrides",
        ["tenant_id", "client_id"],
        schema=SCHEMA,
    )

    op.create_table(
        "rulebook_task_generations",
        *_base_columns(),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("client_id", UUID(as_uuid=False), nullable=False),
        Column("rule_id", UUID(as_uuid=False), nullable=False),
        Column("period_key", String(length=32), nullable=False),
        Column("scheduled_due_date", Date, nullable=False),
        Column("generated_task_id", UUID(as_uuid=False), nullable=True),
        Column("status", String(length=16), nullable=False, server_default="created"),
        Column("error_message", Text, nullable=True),
        Column("generation_context", JSONB, nullable=False, server_default=text("'{}'::jsonb")),
        PrimaryKeyConstraint("id", name="pk_rulebook_task_generations"),
        _tenant_fk("rulebook_task_generations"),
        ForeignKeyConstraint(
            ["client_id"],
            [_ref("clients")],
            name="fk_rulebook_task_generations_client_id_clients",
            ondelete="CASCADE",
        ),
        ForeignKeyConstraint(
            ["rule_id"],
            [_ref("rulebook_rules")],
            name="fk_rulebook_task_generations_rule_id_rulebook_rules",
            ondelete="CASCADE",
        ),
        ForeignKeyConstraint(
            ["generated_task_id"],
            [_ref("tasks")],
            name="fk_rulebook_task_generations_generated_task_id_tasks",
            ondelete="SET NULL",
        ),
        UniqueConstraint(
            "tenant_id",
            "client_id",
            "rule_id",
            "period_key",
            name="uq_rulebook_task_generations_tenant_id",
        ),
        CheckConstraint(
            "status IN ('created', 'linked', 'error')",
            name="ck_rulebook_task_generations_status",
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_rulebook_task_generations_tenant_due",
        "rulebook_task_generations",
        ["tenant_id", "scheduled_due_date", "status"],
        schema=SCHEMA,
    )

    op.create_table(
        "rulebook_generation_runs",
        *_base_columns(),
        Column("tenant_id", UUID(as_uuid=False), nullable=False),
        Column("actor_id", UUID(as_uuid=False), nullable=True),
        Column("from_date", Date, nullable=False),
        Column("to_date", Date, nullable=False),
        Column("dry_run", Boolean, nullable=False, server_default=text("false")),
        Column("status", String(length=16), nullable=False, server_default="running"),
        Column("started_at", DateTime(timezone=True), nullable=False),
        Column("finished_at", DateTime(timezone=True), nullable=True),
        Column("summary", JSONB, nullable=True),
        Column("error_message", Text, nullable=True),
        PrimaryKeyConstraint("id", name="pk_rulebook_generation_runs"),
        _tenant_fk("rulebook_generation_runs"),
        CheckConstraint(
            "status IN ('running', 'completed', 'failed')",
            name="ck_rulebook_generation_runs_status",
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_rulebook_generation_runs_tenant_started",
        "rulebook_generation_runs",
        ["tenant_id", "started_at"],
        schema=SCHEMA,
    )


def downgrade() -> None:
    """Drop every table created by this revision (reverse dependency order)."""
    for table in (
        "rulebook_generation_runs",
        "rulebook_task_generations",
        "rulebook_rule_overrides",
        "rulebook_rules",
        "rulebook_versions",
        "audit_log",
        "tasks",
        "client_accountants",
        "clients",
        "profiles",
        "tenants",
    ):
        op.drop_table(table, schema=SCHEMA)
