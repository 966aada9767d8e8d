# src/rulebook_engine/domain/services/default_rules.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Default Ukrainian compliance rulebook.

Purpose:
    Provide the baseline rule catalog seeded into a tenant by
    ``InitRulebookForTenantUseCase``: single tax, VAT, payroll, unified
    social contribution, excise, land, real-estate, ecological tax and
    non-profit reporting obligations.

Layer:
    domain/services

Notes:
    - Blobs are stored exactly as written here, so every entry must parse
      with :mod:`rulebook_engine.domain.services.rule_config_parser`.
    - ``sort_order`` steps by 10 to leave room for tenant-specific rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Final

from rulebook_engine.domain.entities.rulebook import NewRulebookRule

__all__ = [
    "DEFAULT_RULEBOOK_RULES",
    "DEFAULT_RULEBOOK_VERSION",
    "DefaultRulebookVersion",
]


@dataclass(frozen=True, slots=True)
class DefaultRulebookVersion:
    """Identity of the version the default catalog is seeded into."""

    code: str
    name: str
    description: str
    effective_from: date


DEFAULT_RULEBOOK_VERSION: Final = DefaultRulebookVersion(
    code="ua-core-2026",
    name="UA Core Rulebook 2026",
    description="Baseline tax calendar rules (Ukraine, 2026).",
    effective_from=date(2026, 1, 1),
)

_NEXT = "next_business_day"
_PREV = "prev_business_day"

_FOP_GROUP_1_2: Final[dict[str, Any]] = {
    "all": [
        {"field": "client_type", "op": "eq", "value": "FOP"},
        {"field": "tax_system", "op": "in", "value": ["single_tax_group1", "single_tax_group2"]},
    ]
}
_HAS_EMPLOYEES: Final[dict[str, Any]] = {"field": "has_employees", "op": "eq", "value": True}


def _tag(tag: str) -> dict[str, Any]:
    return {"all": [{"field": "tax_tags", "op": "contains", "value": tag}]}


def _days_after(days: int) -> dict[str, Any]:
    return {"kind": "days_after_period_end", "days": days, "shift_if_non_business_day": _NEXT}


def _template(title: str, task_type: str, *, priority: int = 1, proof: bool = True) -> dict[str, Any]:
    return {
        "title": title,
        "task_type": task_type,
        "priority": priority,
        "proof_required": proof,
        "assignee_policy": "client_primary_or_any",
    }


_CATALOG: Final[tuple[dict[str, Any], ...]] = (
    {
        "code": "single_tax_monthly_payment_fop12",
        "title": "Single tax: monthly payment (FOP groups 1-2)",
        "legal_basis": ("Tax Code art. 295.1",),
        "match_condition": _FOP_GROUP_1_2,
        "recurrence": {"kind": "monthly"},
        "due_rule": {"kind": "day_of_month", "day": 20, "shift_if_non_business_day": _PREV},
        "task_template": _template("Pay single tax (FOP groups 1-2)", "payment"),
    },
    {
        "code": "fop12_annual_declaration",
        "title": "FOP groups 1-2: annual single tax return",
        "legal_basis": ("Tax Code art. 296.2", "Tax Code art. 49.18.3"),
        "match_condition": _FOP_GROUP_1_2,
        "recurrence": {"kind": "annual"},
        "due_rule": _days_after(60),
        "task_template": _template("File annual single tax return (FOP groups 1-2)", "tax_report"),
    },
    {
        "code": "fop3_quarterly_declaration",
        "title": "FOP group 3: quarterly single tax return",
        "legal_basis": ("Tax Code art. 296.3", "Tax Code art. 49.18.2"),
        "match_condition": {
            "all": [
                {"field": "client_type", "op": "eq", "value": "FOP"},
                {
                    "field": "tax_system",
                    "op": "in",
                    "value": ["single_tax_group3", "single_tax_group3_vat"],
                },
            ]
        },
        "recurrence": {"kind": "quarterly"},
        "due_rule": _days_after(40),
        "task_template": _template("File quarterly single tax return (FOP group 3)", "tax_report"),
    },
    {
        "code": "fop_self_esv_quarterly",
        "title": "FOP: unified social contribution for self",
        "legal_basis": ("Law No. 2464-VI art. 9 part 8",),
        "match_condition": {"all": [{"field": "client_type", "op": "eq", "value": "FOP"}]},
        "recurrence": {"kind": "quarterly"},
        "due_rule": {
            "kind": "day_of_month",
            "day": 20,
            "month_offset": 3,
            "shift_if_non_business_day": _NEXT,
        },
        "task_template": _template("Pay unified social contribution for self (FOP)", "payment"),
    },
    {
        "code": "vat_declaration_monthly",
        "title": "VAT: monthly return",
        "legal_basis": ("Tax Code art. 202.1", "Tax Code art. 203.1"),
        "match_condition": {"all": [{"field": "is_vat_payer", "op": "eq", "value": True}]},
        "recurrence": {"kind": "monthly"},
        "due_rule": _days_after(20),
        "task_template": _template("File VAT return", "tax_report"),
    },
    {
        "code": "vat_payment_monthly",
        "title": "VAT: payment of tax liability",
        "legal_basis": ("Tax Code art. 203.2",),
        "match_condition": {"all": [{"field": "is_vat_payer", "op": "eq", "value": True}]},
        "recurrence": {"kind": "monthly"},
        "due_rule": _days_after(30),
        "task_template": _template("Pay VAT", "payment"),
    },
    {
        "code": "payroll_advance_twice_monthly",
        "title": "Payroll: advance (twice a month)",
        "legal_basis": ("Labour Code art. 115",),
        "match_condition": {"all": [_HAS_EMPLOYEES]},
        "recurrence": {"kind": "semi_monthly", "event": "advance"},
        "due_rule": {
            "kind": "profile_day_of_month",
            "profile_field": "payroll_advance_day",
            "shift_if_non_business_day": _PREV,
        },
        "task_template": _template("Pay salary advance", "payroll"),
    },
    {
        "code": "payroll_final_twice_monthly",
        "title": "Payroll: final payment (twice a month)",
        "legal_basis": ("Labour Code art. 115",),
        "match_condition": {"all": [_HAS_EMPLOYEES]},
        "recurrence": {"kind": "semi_monthly", "event": "salary"},
        "due_rule": {
            "kind": "profile_day_of_month",
            "profile_field": "payroll_final_day",
            "shift_if_non_business_day": _PREV,
        },
        "task_template": _template("Pay main salary", "payroll"),
    },
    {
        "code": "payroll_headcount_over_10",
        "title": "HR: document review for headcount over 10",
        "legal_basis": ("Internal practice policy",),
        "match_condition": {
            "all": [
                _HAS_EMPLOYEES,
                {"field": "employee_count", "op": "gt", "value": 10},
            ]
        },
        "recurrence": {"kind": "monthly"},
        "due_rule": {
            "kind": "day_of_month",
            "day": 5,
            "month_offset": 1,
            "shift_if_non_business_day": _NEXT,
        },
        "task_template": _template(
            "Review HR document pack for companies with over 10 employees",
            "payroll",
            priority=2,
            proof=False,
        ),
    },
    {
        "code": "payroll_unified_report_monthly_non_fop",
        "title": "Payroll reporting: monthly tax calculation",
        "legal_basis": ("Tax Code art. 51.1", "Tax Code art. 176.2"),
        "match_condition": {
            "all": [
                _HAS_EMPLOYEES,
                {"field": "client_type", "op": "neq", "value": "FOP"},
            ]
        },
        "recurrence": {"kind": "monthly"},
        "due_rule": _days_after(20),
        "task_template": _template(
            "File PIT/military levy/USC tax calculation (monthly)", "tax_report"
        ),
    },
    {
        "code": "payroll_unified_report_quarterly_fop",
        "title": "FOP payroll reporting: quarterly tax calculation",
        "legal_basis": ("Tax Code art. 51.1", "Tax Code art. 176.2", "Tax Code art. 49.18.2"),
        "match_condition": {
            "all": [
                _HAS_EMPLOYEES,
                {"field": "client_type", "op": "eq", "value": "FOP"},
            ]
        },
        "recurrence": {"kind": "quarterly"},
        "due_rule": _days_after(40),
        "task_template": _template(
            "File PIT/military levy/USC tax calculation (quarterly, FOP)", "tax_report"
        ),
    },
    {
        "code": "excise_declaration_monthly",
        "title": "Excise: monthly return",
        "legal_basis": ("Tax Code art. 223.2",),
        "match_condition": _tag("excise"),
        "recurrence": {"kind": "monthly"},
        "due_rule": _days_after(20),
        "task_template": _template("File excise tax return", "tax_report"),
    },
    {
        "code": "excise_payment_monthly",
        "title": "Excise: tax payment",
        "legal_basis": ("Tax Code art. 222.3.1",),
        "match_condition": _tag("excise"),
        "recurrence": {"kind": "monthly"},
        "due_rule": _days_after(30),
        "task_template": _template("Pay excise tax", "payment"),
    },
    {
        "code": "land_tax_declaration_annual",
        "title": "Land fee: annual return",
        "legal_basis": ("Tax Code art. 286.2",),
        "match_condition": _tag("land_tax"),
        "recurrence": {"kind": "annual"},
        "due_rule": {"kind": "fixed_date", "month": 2, "day": 20, "shift_if_non_business_day": _NEXT},
        "task_template": _template("File annual land fee return", "tax_report"),
    },
    {
        "code": "land_tax_payment_monthly",
        "title": "Land fee: monthly payment",
        "legal_basis": ("Tax Code art. 287.3",),
        "match_condition": _tag("land_tax"),
        "recurrence": {"kind": "monthly"},
        "due_rule": _days_after(30),
        "task_template": _template("Pay land fee", "payment"),
    },
    {
        "code": "real_estate_tax_declaration_annual",
        "title": "Real estate: annual return (legal entities)",
        "legal_basis": ("Tax Code art. 266.7.5",),
        "match_condition": _tag("real_estate_tax"),
        "recurrence": {"kind": "annual"},
        "due_rule": {"kind": "fixed_date", "month": 2, "day": 20, "shift_if_non_business_day": _NEXT},
        "task_template": _template("File annual real estate tax return", "tax_report"),
    },
    {
        "code": "real_estate_tax_payment_quarterly",
        "title": "Real estate: quarterly advance payments",
        "legal_basis": ("Tax Code art. 266.10.1",),
        "match_condition": _tag("real_estate_tax"),
        "recurrence": {"kind": "quarterly"},
        "due_rule": {
            "kind": "day_of_month",
            "day": 30,
            "month_offset": 3,
            "shift_if_non_business_day": _NEXT,
        },
        "task_template": _template("Pay real estate tax advance", "payment"),
    },
    {
        "code": "ecological_tax_declaration_quarterly",
        "title": "Ecological tax: quarterly return",
        "legal_basis": ("Tax Code art. 250.2",),
        "match_condition": _tag("ecological_tax"),
        "recurrence": {"kind": "quarterly"},
        "due_rule": _days_after(40),
        "task_template": _template("File ecological tax return", "tax_report"),
    },
    {
        "code": "ecological_tax_payment_quarterly",
        "title": "Ecological tax: payment",
        "legal_basis": ("Tax Code art. 250.2",),
        "match_condition": _tag("ecological_tax"),
        "recurrence": {"kind": "quarterly"},
        "due_rule": _days_after(50),
        "task_template": _template("Pay ecological tax", "payment"),
    },
    {
        "code": "non_profit_report_annual",
        "title": "Non-profit organisation: annual report",
        "legal_basis": ("Tax Code art. 133.4", "Tax Code art. 46.2", "Tax Code art. 49.18.3"),
        "match_condition": {
            "all": [
                {"field": "tax_system", "op": "eq", "value": "non_profit"},
                {"field": "tax_tags", "op": "contains", "value": "non_profit_reporting"},
            ]
        },
        "recurrence": {"kind": "annual"},
        "due_rule": _days_after(60),
        "task_template": _template("File non-profit organisation annual report", "tax_report"),
    },
)

DEFAULT_RULEBOOK_RULES: Final[tuple[NewRulebookRule, ...]] = tuple(
    NewRulebookRule(sort_order=(index + 1) * 10, **entry) for index, entry in enumerate(_CATALOG)
)
