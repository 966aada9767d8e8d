# src/rulebook_engine/domain/services/assignee_resolver.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Assignee and task-author resolution.

Purpose:
    Pick who a generated task is assigned to, and which profile is recorded
    as its author, from the client's accountant assignments and the tenant's
    active staff.

Layer:
    domain/services

Notes:
    Assignee order:
        1. Template ``assignee_id`` when the policy is ``explicit_assignee``.
        2. The client's primary accountant.
        3. The client's first assigned accountant.
        4. Template ``assignee_id`` as a fallback for any policy.
        5. The first active admin.
        6. The first active accountant.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from rulebook_engine.domain.entities.practice import ClientAssignment, StaffProfile
from rulebook_engine.domain.entities.rule_config import TaskTemplate
from rulebook_engine.domain.enums.rulebook import AssigneePolicy, StaffRole

__all__ = [
    "StaffFallbacks",
    "group_assignments_by_client",
    "resolve_assignee_id",
    "resolve_created_by",
]


@dataclass(frozen=True, slots=True)
class StaffFallbacks:
    """Tenant-wide fallback profiles."""

    admin_id: str | None = None
    accountant_id: str | None = None

    @classmethod
    def from_profiles(cls, profiles: Iterable[StaffProfile]) -> StaffFallbacks:
        """Take the first active admin and the first active accountant."""
        admin_id: str | None = None
        accountant_id: str | None = None
        for profile in profiles:
            if not profile.is_active:
                continue
            if admin_id is None and profile.role == StaffRole.ADMIN.value:
                admin_id = profile.id
            elif accountant_id is None and profile.role == StaffRole.ACCOUNTANT.value:
                accountant_id = profile.id
        return cls(admin_id=admin_id, accountant_id=accountant_id)


def group_assignments_by_client(
    assignments: Iterable[ClientAssignment],
) -> dict[str, list[ClientAssignment]]:
    """Bucket assignments by client, keeping read order within a client."""
    grouped: dict[str, list[ClientAssignment]] = {}
    for assignment in assignments:
        grouped.setdefault(assignment.client_id, []).append(assignment)
    return grouped


def resolve_assignee_id(
    client_id: str,
    template: TaskTemplate,
    assignments_by_client: Mapping[str, Sequence[ClientAssignment]],
    fallbacks: StaffFallbacks,
) -> str | None:
    """Return the assignee for a task generated for ``client_id``, or ``None``."""
    if template.assignee_policy is AssigneePolicy.EXPLICIT_ASSIGNEE and template.assignee_id:
        return template.assignee_id

    assignments = assignments_by_client.get(client_id, ())
    for assignment in assignments:
        if assignment.is_primary:
            return assignment.accountant_id
    if assignments:
        return assignments[0].accountant_id

    return template.assignee_id or fallbacks.admin_id or fallbacks.accountant_id


def resolve_created_by(actor_profile_id: str | None, fallbacks: StaffFallbacks) -> str | None:
    """Return the profile recorded as author of generated tasks."""
    return actor_profile_id or fallbacks.admin_id or fallbacks.accountant_id
