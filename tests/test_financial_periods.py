"""Unit tests for reporting windows."""

from __future__ import annotations

from datetime import date

import pytest

from src.app.financials.periods import (
    add_months,
    iter_months,
    month_bounds,
    overlap_days,
    previous_period,
    resolve_date_range,
    trailing_months,
)
from src.app.financials.schemas import DateRange

# Wednesday
TODAY = date(2026, 5, 13)


def test_today():
    period = resolve_date_range("today", TODAY)
    assert period.start == period.end == TODAY


def test_this_week_starts_on_sunday():
    period = resolve_date_range("this_week", TODAY)
    assert period.start == date(2026, 5, 10)
    assert period.end == TODAY


def test_this_week_on_a_sunday():
    sunday = date(2026, 5, 10)
    assert resolve_date_range("this_week", sunday).start == sunday


def test_this_month():
    period = resolve_date_range("this_month", TODAY)
    assert (period.start, period.end) == (date(2026, 5, 1), date(2026, 5, 31))


def test_this_quarter():
    period = resolve_date_range("this_quarter", TODAY)
    assert (period.start, period.end) == (date(2026, 4, 1), date(2026, 6, 30))


def test_this_year():
    period = resolve_date_range("this_year", TODAY)
    assert (period.start, period.end) == (date(2026, 1, 1), date(2026, 12, 31))


@pytest.mark.parametrize("name", ["last_30_days", None, "fortnight"])
def test_last_30_days_is_the_fallback(name):
    period = resolve_date_range(name, TODAY)
    assert period.start == date(2026, 4, 13)
    assert period.end == TODAY


def test_month_bounds_leap_february():
    assert month_bounds(2028, 2).end == date(2028, 2, 29)


def test_previous_period_has_equal_length():
    period = DateRange(start=date(2026, 5, 1), end=date(2026, 5, 31))
    previous = previous_period(period)
    assert previous.end == date(2026, 4, 30)
    assert previous.days == period.days


def test_add_months_wraps_years():
    assert add_months(2026, 11, 3) == (2027, 2)
    assert add_months(2026, 1, -1) == (2025, 12)


def test_iter_months_clips_to_window():
    months = list(iter_months(date(2026, 1, 15), date(2026, 3, 10)))
    assert [m.start for m in months] == [date(2026, 1, 15), date(2026, 2, 1), date(2026, 3, 1)]
    assert months[-1].end == date(2026, 3, 10)


def test_trailing_months_oldest_first():
    months = trailing_months(3, TODAY)
    assert [m.start.month for m in months] == [3, 4, 5]
    assert months[-1].end == date(2026, 5, 31)


def test_overlap_days():
    window = DateRange(start=date(2026, 5, 1), end=date(2026, 5, 31))
    assert overlap_days(date(2026, 4, 20), date(2026, 5, 10), window) == 10
    assert overlap_days(date(2026, 6, 1), date(2026, 6, 10), window) == 0
