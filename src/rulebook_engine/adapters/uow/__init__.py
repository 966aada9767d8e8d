# src/rulebook_engine/adapters/uow/__init__.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Unit of Work implementations (Adapters Layer)

Purpose:
    Provide concrete UnitOfWork implementations backed by SQLAlchemy
    AsyncSession. Application-layer code must depend only on the
    `UnitOfWork` protocol from `rulebook_engine.application.uow`.

Exports:
    - SqlAlchemyUnitOfWork: SQLAlchemy-backed UnitOfWork used by the CLI and
      HTTP trigger wiring.
"""

from __future__ import annotations

from .sqlalchemy_uow import SqlAlchemyUnitOfWork

__all__ = ["SqlAlchemyUnitOfWork"]
