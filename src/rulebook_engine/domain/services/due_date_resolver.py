# src/rulebook_engine/domain/services/due_date_resolver.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Due-date resolution.

Purpose:
    Turn a period window and a due-date policy into a concrete calendar
    date, optionally moved off weekends and listed holidays.

Layer:
    domain/services

Notes:
    - Calendar dates only. Tenants in different timezones see the same
      due date.
    - Day-of-month construction clamps into ``[1, last day of month]``:
      day 31 in February becomes the 28th (29th in leap years).
    - The business-day walk moves one day at a time; Saturday and Sunday are
      never business days.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from rulebook_engine.domain.entities.generation import DueDateResolution, PeriodWindow
from rulebook_engine.domain.entities.rule_config import (
    LITERAL_DAY_DUE_RULES,
    DaysAfterPeriodEndDueRule,
    DueRule,
    FixedDateDueRule,
    ProfileDayOfMonthDueRule,
)
from rulebook_engine.domain.enums.rulebook import BusinessDayShift, PayrollProfileField

__all__ = [
    "DEFAULT_PAYROLL_ADVANCE_DAY",
    "DEFAULT_PAYROLL_FINAL_DAY",
    "DueDateContext",
    "build_clamped_date",
    "is_business_day",
    "resolve_due_date_for_period",
    "shift_month",
    "shift_to_business_day",
]

DEFAULT_PAYROLL_ADVANCE_DAY = 15
DEFAULT_PAYROLL_FINAL_DAY = 30


@dataclass(frozen=True, slots=True)
class DueDateContext:
    """Per-client inputs to due-date resolution.

    Attributes:
        holidays: Non-business dates in addition to weekends.
        payroll_advance_day: Client's payroll advance day, if known.
        payroll_final_day: Client's final payroll day, if known.
    """

    holidays: frozenset[date] = field(default_factory=frozenset)
    payroll_advance_day: int | None = None
    payroll_final_day: int | None = None

    @classmethod
    def build(
        cls,
        *,
        holidays: Iterable[date] = (),
        payroll_advance_day: int | None = None,
        payroll_final_day: int | None = None,
    ) -> DueDateContext:
        """Build a context from any iterable of holiday dates."""
        return cls(
            holidays=frozenset(holidays),
            payroll_advance_day=payroll_advance_day,
            payroll_final_day=payroll_final_day,
        )


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Return ``(year, month)`` moved by a signed number of months."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def build_clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, clamping ``day`` into the month's valid range."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(day, last_day)))


def is_business_day(value: date, holidays: frozenset[date]) -> bool:
    """Return True for weekdays that are not listed holidays."""
    return value.weekday() < 5 and value not in holidays


def shift_to_business_day(value: date, strategy: BusinessDayShift, holidays: frozenset[date]) -> date:
    """Move ``value`` onto a business day in the direction given by ``strategy``."""
    if strategy is BusinessDayShift.NONE:
        return value
    step = timedelta(days=-1 if strategy is BusinessDayShift.PREV_BUSINESS_DAY else 1)
    cursor = value
    while not is_business_day(cursor, holidays):
        cursor += step
    return cursor


def _profile_day(rule: ProfileDayOfMonthDueRule, context: DueDateContext) -> int:
    if rule.profile_field is PayrollProfileField.PAYROLL_ADVANCE_DAY:
        return (
            context.payroll_advance_day
            if context.payroll_advance_day is not None
            else DEFAULT_PAYROLL_ADVANCE_DAY
        )
    return (
        context.payroll_final_day
        if context.payroll_final_day is not None
        else DEFAULT_PAYROLL_FINAL_DAY
    )


def _nominal_due_date(period: PeriodWindow, due_rule: DueRule, context: DueDateContext) -> date:
    if isinstance(due_rule, DaysAfterPeriodEndDueRule):
        return period.period_end + timedelta(days=due_rule.days)

    if isinstance(due_rule, FixedDateDueRule):
        return build_clamped_date(period.period_start.year, due_rule.month, due_rule.day)

    if isinstance(due_rule, ProfileDayOfMonthDueRule):
        day = _profile_day(due_rule, context)
    elif isinstance(due_rule, LITERAL_DAY_DUE_RULES):
        day = due_rule.day
    else:
        raise TypeError(f"Unsupported due rule: {due_rule!r}")

    year, month = shift_month(
        period.period_start.year, period.period_start.month, due_rule.month_offset
    )
    return build_clamped_date(year, month, day)


def resolve_due_date_for_period(
    period: PeriodWindow,
    due_rule: DueRule,
    context: DueDateContext | None = None,
) -> DueDateResolution:
    """Resolve the due date of one period under a due-date policy.

    Args:
        period: Period window from the recurrence enumerator.
        due_rule: Parsed due-date policy.
        context: Holidays and payroll days. Missing payroll days default to
            15 (advance) and 30 (final).

    Returns:
        DueDateResolution: Shifted due date plus the period identity.

    Example:
        >>> from rulebook_engine.domain.enums.rulebook import BusinessDayShift
        >>> from rulebook_engine.domain.entities.rule_config import DayOfMonthDueRule
        >>> march = PeriodWindow("2026-03", date(2026, 3, 1), date(2026, 3, 31))
        >>> rule = DayOfMonthDueRule(day=15, shift=BusinessDayShift.PREV_BUSINESS_DAY)
        >>> resolve_due_date_for_period(march, rule).due_date
        datetime.date(2026, 3, 13)
    """
    ctx = context or DueDateContext()
    nominal = _nominal_due_date(period, due_rule, ctx)
    return DueDateResolution(
        due_date=shift_to_business_day(nominal, due_rule.shift, ctx.holidays),
        period_key=period.period_key,
        period_start=period.period_start,
        period_end=period.period_end,
    )
