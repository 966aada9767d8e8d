# src/rulebook_engine/__init__.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Compliance rulebook engine.

Decides which recurring regulatory and payroll obligations apply to which
client, computes due dates, and records each occurrence exactly once.
"""

__version__ = "0.1.0"
