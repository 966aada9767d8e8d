# src/rulebook_engine/adapters/repositories/practice_directory_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Practice Directory Repository (SQLAlchemy).

Purpose:
    Read-only queries over host-application tables: tenants, clients,
    accountant assignments and staff profiles.

Layer:
    adapters
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rulebook_engine.adapters.repositories.base_repository import BaseRepository
from rulebook_engine.domain.entities.practice import ClientAssignment, ClientRecord, StaffProfile
from rulebook_engine.infrastructure.database.models.practice import (
    Client,
    ClientAccountant,
    Profile,
    Tenant,
)

ARCHIVED_CLIENT_STATUS = "archived"


def _client_to_entity(row: Client) -> ClientRecord:
    return ClientRecord(
        id=row.id,
        client_type=row.client_type,
        status=row.status,
        tax_system=row.tax_system,
        is_vat_payer=bool(row.is_vat_payer),
        employee_count=row.employee_count,
        additional_tax_tags=(
            tuple(row.additional_tax_tags) if row.additional_tax_tags is not None else None
        ),
        timezone=row.timezone,
        payroll_frequency=row.payroll_frequency,
        payroll_advance_day=row.payroll_advance_day,
        payroll_final_day=row.payroll_final_day,
    )


class SqlAlchemyPracticeDirectoryRepository(BaseRepository[Client]):
    """SQLAlchemy-backed implementation of the practice directory contract."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the primary database.
        """
        super().__init__(session=session)

    async def list_active_tenant_ids(self) -> Sequence[str]:
        """Return ids of active tenants ordered by creation time."""
        stmt = self.order_by_created(
            select(Tenant.id).where(Tenant.is_active.is_(True)),
            Tenant.created_at,
            Tenant.id,
        )
        result = await self._session.execute(stmt)
        return [str(tid) for tid in result.scalars().all()]

    async def list_clients(self, tenant_id: str) -> Sequence[ClientRecord]:
        """Return non-archived clients ordered by creation time."""
        stmt = self.order_by_created(
            select(Client).where(
                Client.tenant_id == tenant_id,
                Client.status != ARCHIVED_CLIENT_STATUS,
            ),
            Client.created_at,
            Client.id,
        )
        rows = await self.fetch_all(stmt)
        return [_client_to_entity(row) for row in rows]

    async def list_assignments(self, tenant_id: str) -> Sequence[ClientAssignment]:
        """Return accountant assignments in creation order."""
        stmt = self.order_by_created(
            select(ClientAccountant).where(ClientAccountant.tenant_id == tenant_id),
            ClientAccountant.created_at,
            ClientAccountant.id,
        )
        result = await self._session.execute(stmt)
        return [
            ClientAssignment(
                client_id=row.client_id,
                accountant_id=row.accountant_id,
                is_primary=bool(row.is_primary),
            )
            for row in result.scalars().all()
        ]

    async def list_active_staff(self, tenant_id: str) -> Sequence[StaffProfile]:
        """Return active staff profiles in creation order."""
        stmt = self.order_by_created(
            select(Profile).where(Profile.tenant_id == tenant_id, Profile.is_active.is_(True)),
            Profile.created_at,
            Profile.id,
        )
        result = await self._session.execute(stmt)
        return [
            StaffProfile(id=row.id, role=row.role, is_active=bool(row.is_active))
            for row in result.scalars().all()
        ]
