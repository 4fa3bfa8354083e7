"""
Workday arithmetic.

All functions walk one calendar day at a time, so they are only intended for
construction-scale spans (days to months), never for unbounded counts.
"""
from datetime import date, timedelta
from typing import AbstractSet, Optional

from app.scheduling.calendar import is_non_work_day, is_weekend

ONE_DAY = timedelta(days=1)


def next_workday(day: date, holidays: Optional[AbstractSet[str]] = None) -> date:
    """Return day itself if it is a workday, otherwise the first workday after it."""
    current = day
    while is_non_work_day(current, holidays):
        current += ONE_DAY
    return current


def add_workdays(start: date, workdays: int, holidays: Optional[AbstractSet[str]] = None) -> date:
    """
    Return the date on which a span of `workdays` workdays starting at `start` ends.

    `start` counts as day 1 when it is a workday, so add_workdays(mon, 5) is the
    Friday of the same week. A count of 0 (or less) returns `start` unchanged.

    Args:
        start: First calendar day of the span
        workdays: Number of workdays in the span
        holidays: ISO date strings treated as non-work days

    Returns:
        date: The day the last workday is counted on
    """
    if workdays <= 0:
        return start

    current = start
    counted = 0
    while True:
        if not is_non_work_day(current, holidays):
            counted += 1
            if counted >= workdays:
                return current
        current += ONE_DAY


def add_lag(after: date, lag_days: int, holidays: Optional[AbstractSet[str]] = None) -> date:
    """
    Return the start date for a successor that must wait `lag_days` after `after`.

    Walks forward from the day after `after`, counting only workdays, until
    `lag_days` have been counted; the landing day is then moved forward to a
    workday. A lag of 0 yields the first workday strictly after `after`.
    """
    current = after + ONE_DAY
    counted = 0
    while counted < lag_days:
        if not is_non_work_day(current, holidays):
            counted += 1
        if counted < lag_days:
            current += ONE_DAY
    return next_workday(current, holidays)


def add_business_days(start_date: date, business_days: int, holidays: Optional[AbstractSet[str]] = None) -> date:
    """
    Calculate the date that is a specified number of business days after the start date.

    The start date itself is not counted. Only weekends are skipped unless a
    holiday set is supplied.

    Args:
        start_date: The start date
        business_days: Number of business days to add
        holidays: Optional ISO date strings to skip as well

    Returns:
        date: The calculated date that is business_days after start_date
    """
    current_date = start_date
    business_days_counted = 0

    while business_days_counted < business_days:
        current_date += ONE_DAY
        if holidays:
            if not is_non_work_day(current_date, holidays):
                business_days_counted += 1
        elif not is_weekend(current_date):
            business_days_counted += 1

    return current_date
