"""
Calendar-month arithmetic.

Vehicle ages and violation recency are measured in calendar months, not
30-day blocks, so bracket edges (exactly 6, 12, 60 months) land on the
same day of the month.
"""
from __future__ import annotations

import calendar
from datetime import date


def add_months(d: date, months: int) -> date:
    """
    Shift a date by whole calendar months (negative to go back).

    The day is clamped to the target month's length, so
    ``add_months(date(2024, 8, 31), -6)`` is ``date(2024, 2, 29)``.
    """
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """
    Completed calendar months from ``start`` to ``end`` (0 if end <= start).

    Example:
        >>> months_between(date(2022, 1, 15), date(2024, 7, 15))
        30
    """
    if end <= start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, months) > end:
        months -= 1
    return months
