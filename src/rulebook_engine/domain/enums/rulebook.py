# src/rulebook_engine/domain/enums/rulebook.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Rulebook enums.

Purpose:
    Define the closed vocabularies used by rule configuration (recurrence
    kinds, due-date policies, business-day shifts, condition operators,
    assignee policies) and by the generation ledger.

Layer:
    domain/enums

Notes:
    - Values match the JSON stored in rule/override configuration blobs, so
      ``RecurrenceKind("monthly")`` parses a stored value directly.
"""

from __future__ import annotations

from enum import Enum


class RecurrenceKind(str, Enum):
    """How often an obligation repeats."""

    MONTHLY = "monthly"
    SEMI_MONTHLY = "semi_monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class DueRuleKind(str, Enum):
    """Due-date policy discriminator."""

    DAY_OF_MONTH = "day_of_month"
    BUSINESS_DAY_OF_MONTH = "business_day_of_month"
    PROFILE_DAY_OF_MONTH = "profile_day_of_month"
    DAYS_AFTER_PERIOD_END = "days_after_period_end"
    FIXED_DATE = "fixed_date"


class BusinessDayShift(str, Enum):
    """Adjustment applied when a nominal due date is not a business day."""

    NONE = "none"
    PREV_BUSINESS_DAY = "prev_business_day"
    NEXT_BUSINESS_DAY = "next_business_day"


class PayrollProfileField(str, Enum):
    """Client profile fields usable by ``profile_day_of_month`` policies."""

    PAYROLL_ADVANCE_DAY = "payroll_advance_day"
    PAYROLL_FINAL_DAY = "payroll_final_day"


class ConditionOperator(str, Enum):
    """Leaf operators supported by the condition evaluator."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NIN = "nin"
    CONTAINS = "contains"
    EXISTS = "exists"


class AssigneePolicy(str, Enum):
    """How a task template picks its assignee."""

    PRIMARY_ACCOUNTANT = "primary_accountant"
    EXPLICIT_ASSIGNEE = "explicit_assignee"
    CLIENT_PRIMARY_OR_ANY = "client_primary_or_any"


class TaskRecurrence(str, Enum):
    """Recurrence label copied onto generated tasks."""

    NONE = "none"
    MONTHLY = "monthly"
    SEMI_MONTHLY = "semi_monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class GenerationStatus(str, Enum):
    """Lifecycle of a generation ledger row."""

    CREATED = "created"
    LINKED = "linked"
    ERROR = "error"


class GenerationRunStatus(str, Enum):
    """Lifecycle of a persisted generation run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StaffRole(str, Enum):
    """Staff roles relevant to assignee fallback."""

    ADMIN = "admin"
    ACCOUNTANT = "accountant"


__all__ = [
    "AssigneePolicy",
    "BusinessDayShift",
    "ConditionOperator",
    "DueRuleKind",
    "GenerationRunStatus",
    "GenerationStatus",
    "PayrollProfileField",
    "RecurrenceKind",
    "StaffRole",
    "TaskRecurrence",
]
