"""Domain exception types."""

from __future__ import annotations

from .base import DomainError
from .rulebook import (
    GenerationRecordConflictError,
    GenerationWindowError,
    RulebookError,
    RulebookInitError,
    RulebookLoadError,
    RulebookNoActiveVersionError,
    RulebookRuleConflictError,
    RulebookRuleInvalidError,
    RulebookRuleNotFoundError,
    TaskCreationError,
)

__all__ = [
    "DomainError",
    "GenerationRecordConflictError",
    "GenerationWindowError",
    "RulebookError",
    "RulebookInitError",
    "RulebookLoadError",
    "RulebookNoActiveVersionError",
    "RulebookRuleConflictError",
    "RulebookRuleInvalidError",
    "RulebookRuleNotFoundError",
    "TaskCreationError",
]
