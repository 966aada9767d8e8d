# src/rulebook_engine/domain/interfaces/repositories/audit_log_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Audit log repository interface."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class AuditLogRepository(Protocol):
    """Protocol for appending audit log entries."""

    async def append(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        entity: str,
        entity_id: str,
        action: str,
        meta: Mapping[str, Any],
    ) -> None:
        """Append one audit entry."""
