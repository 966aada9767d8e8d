# src/rulebook_engine/domain/entities/practice.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Practice directory entities.

Purpose:
    Read-only projections of host-application data the rulebook engine
    consumes: clients with their tax and payroll attributes, the derived
    client profile used for condition evaluation, accountant assignments
    and staff profiles used for assignee fallback.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

__all__ = [
    "ClientAssignment",
    "ClientProfile",
    "ClientRecord",
    "StaffProfile",
]


@dataclass(frozen=True, slots=True)
class ClientRecord:
    """Client row as stored by the host application (nullable attributes)."""

    id: str
    client_type: str
    status: str
    tax_system: str | None = None
    is_vat_payer: bool = False
    employee_count: int | None = None
    additional_tax_tags: tuple[str, ...] | None = None
    timezone: str | None = None
    payroll_frequency: str | None = None
    payroll_advance_day: int | None = None
    payroll_final_day: int | None = None


@dataclass(frozen=True, slots=True)
class ClientProfile:
    """Normalised client view used only for rule evaluation."""

    client_id: str
    client_type: str
    status: str
    tax_system: str | None
    is_vat_payer: bool
    employee_count: int
    has_employees: bool
    tax_tags: tuple[str, ...]
    timezone: str
    payroll_frequency: str
    payroll_advance_day: int
    payroll_final_day: int

    def as_mapping(self) -> dict[str, Any]:
        """Return the profile as a plain mapping for field-path lookups."""
        data = asdict(self)
        data["tax_tags"] = list(self.tax_tags)
        return data


@dataclass(frozen=True, slots=True)
class ClientAssignment:
    """Accountant assigned to a client."""

    client_id: str
    accountant_id: str
    is_primary: bool = False


@dataclass(frozen=True, slots=True)
class StaffProfile:
    """Staff member of the tenant."""

    id: str
    role: str
    is_active: bool = True
