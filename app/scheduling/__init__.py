"""
Construction phase scheduling.

Dependency-aware workday scheduling of phase templates, the customer-facing
schedule projection, and global delay handling.
"""

from app.scheduling.calendar import is_weekend, is_non_work_day, parse_date, to_iso
from app.scheduling.workdays import add_workdays, add_lag, next_workday, add_business_days
from app.scheduling.holidays import default_holidays
from app.scheduling.engine import (
    PhaseTemplateItem,
    PhaseRecord,
    ScheduledPhase,
    PhaseScheduleEngine,
    CustomerScheduleEngine,
    DelayEngine,
)
from app.scheduling.exceptions import (
    SchedulingError,
    TemplateNotFoundError,
    InvalidTemplateError,
    StorageError,
)

__all__ = [
    'is_weekend',
    'is_non_work_day',
    'parse_date',
    'to_iso',
    'add_workdays',
    'add_lag',
    'next_workday',
    'add_business_days',
    'default_holidays',
    'PhaseTemplateItem',
    'PhaseRecord',
    'ScheduledPhase',
    'PhaseScheduleEngine',
    'CustomerScheduleEngine',
    'DelayEngine',
    'SchedulingError',
    'TemplateNotFoundError',
    'InvalidTemplateError',
    'StorageError',
]
