# tests/unit/domain/services/test_assignee_resolver.py
from __future__ import annotations

from rulebook_engine.domain.entities.practice import ClientAssignment, StaffProfile
from rulebook_engine.domain.entities.rule_config import TaskTemplate
from rulebook_engine.domain.enums.rulebook import AssigneePolicy
from rulebook_engine.domain.services.assignee_resolver import (
    StaffFallbacks,
    group_assignments_by_client,
    resolve_assignee_id,
    resolve_created_by,
)

TEMPLATE = TaskTemplate(title="Pay VAT")
FALLBACKS = StaffFallbacks(admin_id="admin-1", accountant_id="acc-9")


def _assignments(*items: ClientAssignment) -> dict[str, list[ClientAssignment]]:
    return group_assignments_by_client(items)


def test_explicit_policy_wins_over_assignments() -> None:
    template = TaskTemplate(
        title="X", assignee_policy=AssigneePolicy.EXPLICIT_ASSIGNEE, assignee_id="p-explicit"
    )
    assignments = _assignments(ClientAssignment("c-1", "acc-1", is_primary=True))

    assert resolve_assignee_id("c-1", template, assignments, FALLBACKS) == "p-explicit"


def test_primary_accountant_preferred() -> None:
    assignments = _assignments(
        ClientAssignment("c-1", "acc-1"),
        ClientAssignment("c-1", "acc-2", is_primary=True),
    )

    assert resolve_assignee_id("c-1", TEMPLATE, assignments, FALLBACKS) == "acc-2"


def test_first_assignment_without_primary() -> None:
    assignments = _assignments(
        ClientAssignment("c-1", "acc-1"),
        ClientAssignment("c-1", "acc-2"),
        ClientAssignment("c-2", "acc-3", is_primary=True),
    )

    assert resolve_assignee_id("c-1", TEMPLATE, assignments, FALLBACKS) == "acc-1"


def test_template_assignee_is_fallback_for_any_policy() -> None:
    template = TaskTemplate(
        title="X", assignee_policy=AssigneePolicy.PRIMARY_ACCOUNTANT, assignee_id="p-template"
    )

    assert resolve_assignee_id("c-1", template, {}, FALLBACKS) == "p-template"


def test_staff_fallback_order() -> None:
    assert resolve_assignee_id("c-1", TEMPLATE, {}, FALLBACKS) == "admin-1"
    assert resolve_assignee_id("c-1", TEMPLATE, {}, StaffFallbacks(accountant_id="acc-9")) == "acc-9"
    assert resolve_assignee_id("c-1", TEMPLATE, {}, StaffFallbacks()) is None


def test_fallbacks_pick_first_active_admin_and_accountant() -> None:
    fallbacks = StaffFallbacks.from_profiles(
        [
            StaffProfile("acc-0", "accountant", is_active=False),
            StaffProfile("acc-1", "accountant"),
            StaffProfile("admin-1", "admin"),
            StaffProfile("admin-2", "admin"),
            StaffProfile("acc-2", "accountant"),
            StaffProfile("viewer-1", "viewer"),
        ]
    )

    assert fallbacks == StaffFallbacks(admin_id="admin-1", accountant_id="acc-1")


def test_created_by_prefers_actor_then_staff() -> None:
    assert resolve_created_by("actor-1", FALLBACKS) == "actor-1"
    assert resolve_created_by(None, FALLBACKS) == "admin-1"
    assert resolve_created_by(None, StaffFallbacks(accountant_id="acc-9")) == "acc-9"
    assert resolve_created_by(None, StaffFallbacks()) is None
