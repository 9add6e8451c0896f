"""
Calendar arithmetic for backup cycles.

All functions work on plain dates of the host's local calendar.
"""

from datetime import date, timedelta
from typing import Optional


def today() -> date:
    """Return the current local date."""
    return date.today()


def days_ago(n: int, today_date: Optional[date] = None) -> date:
    """Return the date ``n`` days before today (or before ``today_date``)."""
    if today_date is None:
        today_date = today()
    return days_from_date(today_date, -n)


def days_from_date(d: date, delta: int) -> date:
    """Return the date ``delta`` days after ``d`` (negative goes back)."""
    assert isinstance(d, date), f"expected a date, got {d!r}"
    assert isinstance(delta, int), f"expected an integer offset, got {delta!r}"
    return d + timedelta(days=delta)


def weeks_ago_from_date(d: date, weeks: int) -> date:
    """Return the date ``weeks`` weeks before ``d``."""
    assert isinstance(d, date), f"expected a date, got {d!r}"
    assert isinstance(weeks, int), f"expected an integer week count, got {weeks!r}"
    return d - timedelta(weeks=weeks)


def weekday_of(d: date) -> int:
    """Return the ISO day of week of ``d``: 1 = Monday ... 7 = Sunday."""
    assert isinstance(d, date), f"expected a date, got {d!r}"
    return d.isoweekday()
