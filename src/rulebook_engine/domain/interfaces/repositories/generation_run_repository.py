# src/rulebook_engine/domain/interfaces/repositories/generation_run_repository.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Generation run repository interface.

Purpose:
    Track one row per non-dry-run generation invocation so operators can see
    which runs are in flight, finished or failed and what they produced.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any, Protocol


class GenerationRunRepository(Protocol):
    """Protocol for generation run bookkeeping."""

    async def start_run(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        from_date: date,
        to_date: date,
        dry_run: bool,
    ) -> str:
        """Insert a ``running`` row and return its id."""

    async def complete_run(self, run_id: str, summary: Mapping[str, Any]) -> None:
        """Mark the run ``completed`` and store its summary."""

    async def fail_run(self, run_id: str, error_message: str) -> None:
        """Mark the run ``failed`` with an error message."""
