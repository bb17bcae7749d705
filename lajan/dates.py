"""Date utilities for lajan.

Pure functions for date range calculations and schedule arithmetic.
"""

import calendar
from datetime import date, timedelta

from lajan.domain.models import Frequency


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month.

    Args:
        start: Starting date.
        months: Number of months to add (may be negative).

    Returns:
        Shifted date, e.g. 2025-01-31 + 1 month = 2025-02-28.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def advance(scheduled: date, frequency: Frequency, anchor: date | None = None) -> date:
    """Advance a scheduled date by one period.

    Args:
        scheduled: Previously scheduled date (not the current date).
        frequency: Payment frequency.
        anchor: First date of the schedule. Monthly steps are counted from it,
            so a day lost to a short month comes back (Jan 31, Feb 28, Mar 31).

    Returns:
        Next scheduled date: +7 days weekly, +14 days biweekly, +1 calendar
        month monthly.
    """
    if frequency == Frequency.WEEKLY:
        return scheduled + timedelta(days=7)
    if frequency == Frequency.BIWEEKLY:
        return scheduled + timedelta(days=14)
    if anchor is None:
        return add_months(scheduled, 1)
    elapsed = (scheduled.year - anchor.year) * 12 + scheduled.month - anchor.month
    return add_months(anchor, elapsed + 1)


def month_range(year: int, month: int) -> tuple[date, date]:
    """Return the half-open window [first day, first day of next month)."""
    first = date(year, month, 1)
    return first, add_months(first, 1)


def period_start(period: str, today: date) -> date:
    """First day of a reporting period ending today.

    Args:
        period: One of 'week', 'month', 'year'; unknown values fall back to month.
        today: Reference date.

    Returns:
        Start of the period: seven days back for 'week', the first of the month
        for 'month', January 1st for 'year'.
    """
    if period == "week":
        return today - timedelta(days=7)
    if period == "year":
        return date(today.year, 1, 1)
    return date(today.year, today.month, 1)


def windows_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Check whether two half-open date windows [start, end) overlap."""
    return start_a < end_b and start_b < end_a
