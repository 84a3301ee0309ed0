"""Reporting window helpers.

All windows are inclusive date ranges. Weeks start on Sunday.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from datetime import date, timedelta

from src.app.financials.schemas import DateRange, DateRangeName


def month_bounds(year: int, month: int) -> DateRange:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(start=date(year, month, 1), end=date(year, month, last_day))


def resolve_date_range(name: DateRangeName | str | None, today: date | None = None) -> DateRange:
    """Translate a named window into concrete dates.

    Unknown or missing names fall back to the last 30 days.
    """
    today = today or date.today()
    try:
        name = DateRangeName(name) if name is not None else DateRangeName.LAST_30_DAYS
    except ValueError:
        name = DateRangeName.LAST_30_DAYS

    if name == DateRangeName.TODAY:
        return DateRange(start=today, end=today)
    if name == DateRangeName.THIS_WEEK:
        # date.weekday() is Monday=0; shift so Sunday opens the week
        days_since_sunday = (today.weekday() + 1) % 7
        return DateRange(start=today - timedelta(days=days_since_sunday), end=today)
    if name == DateRangeName.THIS_MONTH:
        return month_bounds(today.year, today.month)
    if name == DateRangeName.THIS_QUARTER:
        first_month = 3 * ((today.month - 1) // 3) + 1
        return DateRange(
            start=date(today.year, first_month, 1),
            end=month_bounds(today.year, first_month + 2).end,
        )
    if name == DateRangeName.THIS_YEAR:
        return DateRange(start=date(today.year, 1, 1), end=date(today.year, 12, 31))
    return DateRange(start=today - timedelta(days=30), end=today)


def previous_period(period: DateRange) -> DateRange:
    """Window of equal length ending the day before period starts."""
    end = period.start - timedelta(days=1)
    return DateRange(start=end - timedelta(days=period.days - 1), end=end)


def add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def iter_months(start: date, end: date) -> Iterator[DateRange]:
    """Calendar months touching [start, end], clipped to the window."""
    year, month = start.year, start.month
    while date(year, month, 1) <= end:
        bounds = month_bounds(year, month)
        yield DateRange(start=max(bounds.start, start), end=min(bounds.end, end))
        year, month = add_months(year, month, 1)


def trailing_months(count: int, today: date | None = None) -> list[DateRange]:
    """The last count calendar months, oldest first, including the current one."""
    today = today or date.today()
    months = []
    for offset in range(count - 1, -1, -1):
        year, month = add_months(today.year, today.month, -offset)
        months.append(month_bounds(year, month))
    return months


def overlap_days(start: date, end: date, window: DateRange) -> int:
    """Inclusive count of days [start, end] shares with window."""
    lo = max(start, window.start)
    hi = min(end, window.end)
    if hi < lo:
        return 0
    return (hi - lo).days + 1
