# src/rulebook_engine/domain/interfaces/repositories/practice_directory_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Practice directory repository interface.

Purpose:
    Read access to host-application data consumed by the rulebook engine:
    tenants, clients, accountant assignments and staff profiles.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from rulebook_engine.domain.entities.practice import ClientAssignment, ClientRecord, StaffProfile


class PracticeDirectoryRepository(Protocol):
    """Protocol for read-only practice directory queries."""

    async def list_active_tenant_ids(self) -> Sequence[str]:
        """Return ids of active tenants ordered by creation time."""

    async def list_clients(self, tenant_id: str) -> Sequence[ClientRecord]:
        """Return the tenant's non-archived clients in a stable order."""

    async def list_assignments(self, tenant_id: str) -> Sequence[ClientAssignment]:
        """Return client to accountant assignments of the tenant."""

    async def list_active_staff(self, tenant_id: str) -> Sequence[StaffProfile]:
        """Return active staff profiles in a stable order."""
