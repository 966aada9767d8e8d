# src/rulebook_engine/domain/services/recurrence_enumerator.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Recurrence period enumeration.

Purpose:
    Expand a recurrence into the calendar periods (months, quarters, years)
    that intersect a closed date range, each labelled with a stable period
    key used for idempotency and audit.

Layer:
    domain/services

Notes:
    - Pure domain logic: no logging, no I/O.
    - Monthly and semi-monthly recurrences share one period per calendar
      month; semi-monthly keys carry the event tag (``2026-01-advance``) or
      ``-semi`` when the rule has no event.
    - Quarters align to calendar quarters (Q1 = Jan..Mar).
"""

from __future__ import annotations

import calendar
from datetime import date

from rulebook_engine.domain.entities.generation import PeriodWindow
from rulebook_engine.domain.entities.rule_config import Recurrence
from rulebook_engine.domain.enums.rulebook import RecurrenceKind

__all__ = ["enumerate_periods_in_range"]


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _next_month(year: int, month: int, step: int = 1) -> tuple[int, int]:
    index = year * 12 + (month - 1) + step
    return index // 12, index % 12 + 1


def _month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _enumerate_months(range_start: date, range_end: date, recurrence: Recurrence) -> list[PeriodWindow]:
    periods: list[PeriodWindow] = []
    year, month = range_start.year, range_start.month
    while date(year, month, 1) <= range_end:
        key = _month_key(year, month)
        if recurrence.kind is RecurrenceKind.SEMI_MONTHLY:
            key = f"{key}-{recurrence.event or 'semi'}"
        periods.append(
            PeriodWindow(
                period_key=key,
                period_start=date(year, month, 1),
                period_end=_month_end(year, month),
            )
        )
        year, month = _next_month(year, month)
    return periods


def _enumerate_quarters(range_start: date, range_end: date) -> list[PeriodWindow]:
    periods: list[PeriodWindow] = []
    year, month = range_start.year, (range_start.month - 1) // 3 * 3 + 1
    while date(year, month, 1) <= range_end:
        end_year, end_month = _next_month(year, month, 2)
        periods.append(
            PeriodWindow(
                period_key=f"{year:04d}-Q{(month - 1) // 3 + 1}",
                period_start=date(year, month, 1),
                period_end=_month_end(end_year, end_month),
            )
        )
        year, month = _next_month(year, month, 3)
    return periods


def _enumerate_years(range_start: date, range_end: date) -> list[PeriodWindow]:
    return [
        PeriodWindow(
            period_key=f"{year:04d}",
            period_start=date(year, 1, 1),
            period_end=date(year, 12, 31),
        )
        for year in range(range_start.year, range_end.year + 1)
    ]


def enumerate_periods_in_range(
    range_start: date,
    range_end: date,
    recurrence: Recurrence,
) -> list[PeriodWindow]:
    """Return every period of ``recurrence`` that intersects ``[range_start, range_end]``.

    Args:
        range_start: First day of the range (inclusive).
        range_end: Last day of the range (inclusive).
        recurrence: Parsed recurrence.

    Returns:
        list[PeriodWindow]: Chronologically ordered, distinct periods. Empty
        when ``range_end`` precedes ``range_start``.

    Example:
        >>> from rulebook_engine.domain.enums.rulebook import RecurrenceKind
        >>> [p.period_key for p in enumerate_periods_in_range(
        ...     date(2026, 1, 10), date(2026, 3, 5), Recurrence(RecurrenceKind.MONTHLY))]
        ['2026-01', '2026-02', '2026-03']
    """
    if range_end < range_start:
        return []

    if recurrence.kind in (RecurrenceKind.MONTHLY, RecurrenceKind.SEMI_MONTHLY):
        return _enumerate_months(range_start, range_end, recurrence)
    if recurrence.kind is RecurrenceKind.QUARTERLY:
        return _enumerate_quarters(range_start, range_end)
    return _enumerate_years(range_start, range_end)
