"""Calendar date utilities for Todo Scheduler.

Task dates are naive calendar dates. At every boundary (storage, CLI,
recurrence engine) they travel as fixed 8-digit ``YYYYMMDD`` strings and are
converted to :class:`datetime.date` for arithmetic.
"""

import re
from calendar import isleap, monthrange
from datetime import date, datetime
from typing import Optional

DATE_FORMAT = "%Y%m%d"

_COMPACT_DATE_RE = re.compile(r"^\d{8}$")


def today() -> date:
    """Return the current local calendar date."""
    return date.today()


def parse_compact_date(date_str: str) -> date:
    """Parse a ``YYYYMMDD`` string into a date.

    Args:
        date_str: Eight-digit date text

    Returns:
        The parsed calendar date

    Raises:
        ValueError: If the text is not exactly eight digits or is not a
            valid Gregorian date (e.g. ``20230229``)
    """
    if not isinstance(date_str, str) or not _COMPACT_DATE_RE.match(date_str):
        raise ValueError(f"expected YYYYMMDD, got {date_str!r}")
    return datetime.strptime(date_str, DATE_FORMAT).date()


def format_compact_date(value: date) -> str:
    """Format a date as ``YYYYMMDD``."""
    return value.strftime(DATE_FORMAT)


def parse_display_date(date_str: str, date_format: str) -> Optional[date]:
    """Parse a user-facing date (e.g. ``01.02.2024``), or None if it doesn't match."""
    try:
        return datetime.strptime(date_str.strip(), date_format).date()
    except ValueError:
        return None


def last_day_of_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def add_years(value: date, years: int) -> date:
    """Shift a date by whole years.

    Feb 29 lands on Feb 28 when the target year is not a leap year.
    """
    year = value.year + years
    if value.month == 2 and value.day == 29 and not isleap(year):
        return value.replace(year=year, day=28)
    return value.replace(year=year)


def iso_weekday(value: date) -> int:
    """Monday=1 .. Sunday=7."""
    return value.isoweekday()
