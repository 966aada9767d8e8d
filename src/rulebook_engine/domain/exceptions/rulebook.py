# src/rulebook_engine/domain/exceptions/rulebook.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Rulebook domain exceptions.

Purpose:
    Provide rulebook-specific error types for run windows, run-level load
    failures, ledger conflicts and task materialization failures.

Layer:
    domain

Notes:
    - Malformed stored rule configuration is never raised during generation;
      the parser collapses it to "not actionable" instead. Rule management
      rejects such definitions up front with ``RulebookRuleInvalidError``.
    - Adapters translate persistence errors (e.g. ``IntegrityError``) into
      these types so the application layer stays storage-agnostic.
"""

from __future__ import annotations

from .base import DomainError


class RulebookError(DomainError):
    """Base class for rulebook engine errors."""

    code = "RULEBOOK_ERROR"


class GenerationWindowError(RulebookError):
    """Raised when a generation window is invalid (end before start)."""

    code = "RULEBOOK_INVALID_WINDOW"


class RulebookLoadError(RulebookError):
    """Raised when rules, clients, overrides or staff cannot be loaded for a run."""

    code = "RULEBOOK_LOAD_FAILED"


class GenerationRecordConflictError(RulebookError):
    """Raised when a ledger insert hits the (tenant, client, rule, period) unique key."""

    code = "RULEBOOK_GENERATION_CONFLICT"


class TaskCreationError(RulebookError):
    """Raised when a task for a generation candidate cannot be created."""

    code = "RULEBOOK_TASK_CREATION_FAILED"


class RulebookInitError(RulebookError):
    """Raised when a tenant rulebook cannot be initialized."""

    code = "RULEBOOK_INIT_FAILED"


class RulebookNoActiveVersionError(RulebookError):
    """Raised when rule management needs an active version and the tenant has none."""

    code = "RULEBOOK_NO_ACTIVE_VERSION"


class RulebookRuleNotFoundError(RulebookError):
    """Raised when a rule id does not exist in the tenant's active version."""

    code = "RULEBOOK_RULE_NOT_FOUND"


class RulebookRuleConflictError(RulebookError):
    """Raised when a rule code is already taken by another rule of the version."""

    code = "RULEBOOK_RULE_CONFLICT"


class RulebookRuleInvalidError(RulebookError):
    """Raised when a submitted rule definition could never produce a task."""

    code = "RULEBOOK_RULE_INVALID"
