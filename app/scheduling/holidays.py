"""
Default US holiday rules used to seed the holiday calendar.

Weekday arithmetic below uses the 0=Sunday .. 6=Saturday convention.
"""
from datetime import date, timedelta
from typing import Iterable, List, Tuple


def _sunday_based_weekday(day: date) -> int:
    # date.weekday() is Monday=0; shift so Sunday=0
    return (day.weekday() + 1) % 7


def memorial_day(year: int) -> date:
    """Last Monday of May."""
    may_31 = date(year, 5, 31)
    return may_31 - timedelta(days=(_sunday_based_weekday(may_31) + 6) % 7)


def labor_day(year: int) -> date:
    """First Monday of September."""
    sept_1 = date(year, 9, 1)
    return sept_1 + timedelta(days=(8 - _sunday_based_weekday(sept_1)) % 7)


def thanksgiving(year: int) -> date:
    """Fourth Thursday of November."""
    nov_1 = date(year, 11, 1)
    return nov_1 + timedelta(days=((4 - _sunday_based_weekday(nov_1) + 7) % 7) + 21)


def default_holidays(year: int) -> List[Tuple[str, str]]:
    """
    Compute the standard holiday list for a year.

    Returns:
        list of (iso_date, name) tuples in calendar order
    """
    thanksgiving_day = thanksgiving(year)
    return [
        (date(year, 1, 1).isoformat(), "New Year's Day"),
        (memorial_day(year).isoformat(), "Memorial Day"),
        (date(year, 7, 4).isoformat(), "Independence Day"),
        (labor_day(year).isoformat(), "Labor Day"),
        (thanksgiving_day.isoformat(), "Thanksgiving"),
        ((thanksgiving_day + timedelta(days=1)).isoformat(), "Black Friday"),
        (date(year, 12, 24).isoformat(), "Christmas Eve"),
        (date(year, 12, 25).isoformat(), "Christmas Day"),
        (date(year, 12, 26).isoformat(), "Day after Christmas"),
    ]


def missing_default_holidays(years: Iterable[int], existing: Iterable[str]) -> List[Tuple[str, str]]:
    """Default holidays for the given years whose dates are not already present."""
    seen = set(existing)
    to_add = []
    for year in years:
        for iso_date, name in default_holidays(int(year)):
            if iso_date in seen:
                continue
            seen.add(iso_date)
            to_add.append((iso_date, name))
    return to_add
