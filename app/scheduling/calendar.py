"""
Calendar utility: which days are worked.

A workday is any Monday-Friday that is not listed in the holiday set.
Holiday sets hold ISO date strings (YYYY-MM-DD).
"""
from datetime import date, datetime
from typing import AbstractSet, Optional, Union

DateLike = Union[date, datetime, str]

EMPTY_HOLIDAYS = frozenset()


def to_iso(value: date) -> str:
    """Return the YYYY-MM-DD form of a date (datetimes are truncated)."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Coerce a date, datetime or ISO string to a date.

    Args:
        value: date, datetime, 'YYYY-MM-DD' string (a time part is ignored), or None

    Returns:
        date or None when value is None/empty

    Raises:
        ValueError: If a string is not an ISO date
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip()[:10], '%Y-%m-%d').date()
        except ValueError:
            raise ValueError(f"Invalid date '{value}': expected YYYY-MM-DD")
    raise ValueError(f"Invalid date value: {value!r}")


def is_weekend(day: date) -> bool:
    # Monday=0 ... Saturday=5, Sunday=6
    return day.weekday() >= 5


def is_non_work_day(day: date, holidays: Optional[AbstractSet[str]] = None) -> bool:
    """True for Saturdays, Sundays and any date whose ISO string is a holiday."""
    if is_weekend(day):
        return True
    return bool(holidays) and to_iso(day) in holidays
