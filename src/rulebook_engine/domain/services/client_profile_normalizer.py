# src/rulebook_engine/domain/services/client_profile_normalizer.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Client profile normalisation.

Purpose:
    Derive the evaluation profile of a client from its stored row: clamp
    counts, fold regime flags into tags and fill payroll calendar defaults.

Layer:
    domain/services
"""

from __future__ import annotations

from rulebook_engine.domain.entities.practice import ClientProfile, ClientRecord
from rulebook_engine.domain.services.due_date_resolver import (
    DEFAULT_PAYROLL_ADVANCE_DAY,
    DEFAULT_PAYROLL_FINAL_DAY,
)

__all__ = [
    "DEFAULT_PAYROLL_FREQUENCY",
    "DEFAULT_TIMEZONE",
    "normalize_client_profile",
]

DEFAULT_TIMEZONE = "Europe/Kyiv"
DEFAULT_PAYROLL_FREQUENCY = "semi_monthly"


def _normalize_tags(raw_tags: tuple[str, ...] | None) -> list[str]:
    tags: list[str] = []
    for raw in raw_tags or ():
        tag = str(raw or "").strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def normalize_client_profile(client: ClientRecord) -> ClientProfile:
    """Build the evaluation profile for a client.

    Tags are lower-cased, stripped and de-duplicated in first-seen order;
    ``vat`` is added for VAT payers and ``employees`` when the (clamped)
    employee count is positive.

    Args:
        client: Stored client attributes.

    Returns:
        ClientProfile: Normalised profile.
    """
    employee_count = max(0, client.employee_count or 0)
    tags = _normalize_tags(client.additional_tax_tags)
    if client.is_vat_payer and "vat" not in tags:
        tags.append("vat")
    if employee_count > 0 and "employees" not in tags:
        tags.append("employees")

    return ClientProfile(
        client_id=client.id,
        client_type=client.client_type,
        status=client.status,
        tax_system=client.tax_system,
        is_vat_payer=bool(client.is_vat_payer),
        employee_count=employee_count,
        has_employees=employee_count > 0,
        tax_tags=tuple(tags),
        timezone=client.timezone or DEFAULT_TIMEZONE,
        payroll_frequency=client.payroll_frequency or DEFAULT_PAYROLL_FREQUENCY,
        payroll_advance_day=(
            client.payroll_advance_day
            if client.payroll_advance_day is not None
            else DEFAULT_PAYROLL_ADVANCE_DAY
        ),
        payroll_final_day=(
            client.payroll_final_day
            if client.payroll_final_day is not None
            else DEFAULT_PAYROLL_FINAL_DAY
        ),
    )
