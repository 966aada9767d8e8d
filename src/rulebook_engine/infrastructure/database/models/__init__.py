"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from __future__ import annotations

from rulebook_engine.infrastructure.database.models.base import Base, metadata
from rulebook_engine.infrastructure.database.models.practice import (
    AuditLogEntry,
    Client,
    ClientAccountant,
    Profile,
    Task,
    Tenant,
)
from rulebook_engine.infrastructure.database.models.rulebook import (
    RulebookGenerationRunModel,
    RulebookRuleModel,
    RulebookRuleOverrideModel,
    RulebookTaskGenerationModel,
    RulebookVersionModel,
)

__all__ = [
    "AuditLogEntry",
    "Base",
    "Client",
    "ClientAccountant",
    "Profile",
    "RulebookGenerationRunModel",
    "RulebookRuleModel",
    "RulebookRuleOverrideModel",
    "RulebookTaskGenerationModel",
    "RulebookVersionModel",
    "Task",
    "Tenant",
    "metadata",
]
