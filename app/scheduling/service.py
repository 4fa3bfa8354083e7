"""
Scheduling services.

Each service receives its stores and unit of work through the constructor and
runs one transaction per logical operation:

- HolidayService: seeds and reads the holiday calendar (best-effort seeding)
- PhaseScheduleService: turns a phase template into dated project phases
- ScheduleSyncService: republishes the customer-facing schedule projection
- GlobalDelayService: shifts phases for weather and other delay events
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from app.logging_config import OperationContext, get_logger
from app.scheduling.calendar import parse_date
from app.scheduling.engine import (
    CustomerScheduleEngine,
    DelayEngine,
    PhaseScheduleEngine,
    PhaseTemplateItem,
)
from app.scheduling.exceptions import StorageError, TemplateNotFoundError
from app.scheduling.holidays import missing_default_holidays
from app.scheduling.stores import (
    ExceptionStore,
    HolidayStore,
    PhaseStore,
    ProjectStore,
    ScheduleStore,
    TemplateStore,
    UnitOfWork,
)

logger = get_logger(__name__)


class HolidayService:
    """Service for the holiday calendar."""

    def __init__(self, holiday_store: HolidayStore, uow: UnitOfWork):
        self.holiday_store = holiday_store
        self.uow = uow

    def seed_default_holidays(self, years: Iterable[int]) -> int:
        """
        Insert the default holidays for each year that are not stored yet.

        Seeding is best-effort: a read or write failure is logged and the
        operation is abandoned, leaving the calendar partially seeded.

        Args:
            years: Calendar years to seed

        Returns:
            int: Number of holiday rows inserted (0 on failure)
        """
        years = [int(y) for y in years]
        try:
            existing = self.holiday_store.list_holiday_dates()
        except StorageError as exc:
            self.uow.rollback()
            logger.error("Holiday seeding aborted: could not read holidays", years=years, error=str(exc))
            return 0

        to_add = missing_default_holidays(years, existing)
        if not to_add:
            logger.debug("Holiday calendar already seeded", years=years)
            return 0

        try:
            with self.uow.transaction():
                inserted = self.holiday_store.add_holidays(to_add)
        except StorageError as exc:
            logger.error("Holiday seeding aborted: could not insert holidays", years=years, error=str(exc))
            return 0

        logger.info("Seeded default holidays", years=years, inserted=inserted)
        return inserted

    def load_holiday_set(self):
        """ISO dates the scheduler treats as non-work days."""
        return self.holiday_store.list_non_work_dates()

    def list_holidays(self, year: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.holiday_store.list_holidays(year)


class PhaseScheduleService:
    """Creates dated project phases and their dependencies from a template."""

    def __init__(
        self,
        template_store: TemplateStore,
        holiday_store: HolidayStore,
        phase_store: PhaseStore,
        uow: UnitOfWork,
        default_template: str = "Barndominium",
        phase_status: str = "Planned",
    ):
        self.template_store = template_store
        self.holiday_store = holiday_store
        self.phase_store = phase_store
        self.uow = uow
        self.default_template = default_template
        self.phase_status = phase_status

    def load_template(self, template_name: Optional[str] = None) -> List[PhaseTemplateItem]:
        """
        Resolve an active template by name and return its items in sort order.

        Raises:
            TemplateNotFoundError: If no active template has that name
        """
        name = template_name or self.default_template
        template_id = self.template_store.get_active_template_id(name)
        if template_id is None:
            raise TemplateNotFoundError(name)
        return self.template_store.list_template_items(template_id)

    def create_phases_from_template(
        self,
        project_id,
        project_start_date,
        template_name: Optional[str] = None,
        publish_to_customer: bool = False,
    ) -> Dict[str, int]:
        """
        Schedule every template item for a project and persist the result.

        Phases and their finish-to-start dependencies are written in a single
        transaction; any failure rolls back both and propagates.

        Args:
            project_id: Project receiving the phases
            project_start_date: Requested start (date or YYYY-MM-DD)
            template_name: Template to use (defaults to the configured template)
            publish_to_customer: Initial customer visibility of every phase

        Returns:
            dict: {'created': phases inserted, 'dependencies': dependencies inserted}

        Raises:
            ValueError: Missing project or start date
            TemplateNotFoundError: Unknown template
            InvalidTemplateError: Template graph is cyclic or mis-ordered
            StorageError: Any read or write failure
        """
        if project_id is None or project_id == '':
            raise ValueError("project_id is required")
        start = parse_date(project_start_date)
        if start is None:
            raise ValueError("project_start_date is required")

        name = template_name or self.default_template
        with OperationContext("create_phases_from_template", project_id=project_id, template=name) as op:
            with self.uow.transaction():
                items = self.load_template(name)
                if not items:
                    op.logger.warning("Template has no items")
                    return {'created': 0, 'dependencies': 0}

                PhaseScheduleEngine.validate_template(items)

                holidays = self.holiday_store.list_non_work_dates()
                scheduled = PhaseScheduleEngine.schedule(items, holidays, start)
                phase_rows = PhaseScheduleEngine.build_phase_rows(
                    project_id, scheduled, publish_to_customer, status=self.phase_status
                )

                inserted = self.phase_store.insert_phases(phase_rows)
                phase_ids_by_item = {
                    p.template_item_id: p.id for p in inserted if p.template_item_id is not None
                }
                dependency_rows = PhaseScheduleEngine.build_dependency_rows(
                    project_id, items, phase_ids_by_item
                )
                dependencies = self.phase_store.insert_dependencies(dependency_rows) if dependency_rows else 0

            op.logger.info(
                "Created phases from template",
                phases=len(inserted),
                dependencies=dependencies,
                first_start=scheduled[0].start.isoformat(),
                last_end=scheduled[-1].end.isoformat(),
            )
            return {'created': len(inserted), 'dependencies': dependencies}

    def reconcile_dependencies(self, project_id, template_name: Optional[str] = None) -> int:
        """
        Recreate template dependencies missing for phases that already exist.

        Recovery step after a partial failure between the phase and dependency
        writes: phases are matched to template items by template_item_id and
        only absent (predecessor, successor) edges are inserted.

        Returns:
            int: Number of dependencies created
        """
        name = template_name or self.default_template
        with OperationContext("reconcile_dependencies", project_id=project_id, template=name) as op:
            with self.uow.transaction():
                items = self.load_template(name)
                PhaseScheduleEngine.validate_template(items)

                phase_ids_by_item = {}
                for phase in self.phase_store.list_phases(project_id):
                    if phase.template_item_id is not None and phase.template_item_id not in phase_ids_by_item:
                        phase_ids_by_item[phase.template_item_id] = phase.id

                existing = self.phase_store.list_dependency_edges(project_id)
                rows = PhaseScheduleEngine.build_dependency_rows(project_id, items, phase_ids_by_item, existing)
                if not rows:
                    return 0

                created = self.phase_store.insert_dependencies(rows)

            op.logger.info("Reconciled phase dependencies", created=created)
            return created


class ScheduleSyncService:
    """Republishes the customer-facing schedule of a project."""

    def __init__(
        self,
        phase_store: PhaseStore,
        schedule_store: ScheduleStore,
        uow: UnitOfWork,
        holiday_store: Optional[HolidayStore] = None,
        use_holidays: bool = False,
    ):
        self.phase_store = phase_store
        self.schedule_store = schedule_store
        self.uow = uow
        self.holiday_store = holiday_store
        self.use_holidays = use_holidays

    def sync_project_schedule(self, project_id) -> Dict[str, Any]:
        """
        Rebuild the project's schedule row from its published phases.

        The row is replaced wholesale, so re-running on unchanged phases
        produces the same schedule_data. Reads and the upsert share one
        transaction, so a failed read is rolled back like a failed write.

        Returns:
            dict: project_id, count, project_start_date, total_duration_days
        """
        if project_id is None or project_id == '':
            raise ValueError("Missing projectId")

        with self.uow.transaction():
            phases = self.phase_store.list_published_phases(project_id)
            holidays = None
            if self.use_holidays and self.holiday_store is not None:
                holidays = self.holiday_store.list_non_work_dates()

            schedule = CustomerScheduleEngine.build(phases, holidays)
            self.schedule_store.upsert_project_schedule(
                project_id,
                schedule.project_start_date,
                schedule.total_duration_days,
                schedule.schedule_data,
            )

        logger.info(
            "Synced project schedule",
            project_id=project_id,
            phases=len(schedule.schedule_data),
            total_duration_days=schedule.total_duration_days,
        )
        return {
            'project_id': project_id,
            'count': len(schedule.schedule_data),
            'project_start_date': schedule.project_start_date.isoformat() if schedule.project_start_date else None,
            'total_duration_days': schedule.total_duration_days,
        }

    def get_project_schedule(self, project_id) -> Optional[Dict[str, Any]]:
        return self.schedule_store.get_project_schedule(project_id)


class GlobalDelayService:
    """Applies schedule-wide and per-project date shifts."""

    def __init__(
        self,
        phase_store: PhaseStore,
        exception_store: ExceptionStore,
        project_store: ProjectStore,
        sync_service: ScheduleSyncService,
        uow: UnitOfWork,
    ):
        self.phase_store = phase_store
        self.exception_store = exception_store
        self.project_store = project_store
        self.sync_service = sync_service
        self.uow = uow

    def apply_global_delay(
        self,
        exception_date,
        reason: str,
        delay_days: int,
        exception_type: str = "weather",
    ) -> Dict[str, Any]:
        """
        Record a global exception and push back every phase starting on or after it.

        Projects are processed one at a time; a failing project is logged and
        skipped. The customer schedule of each shifted project is re-synced
        afterwards, and a sync failure does not undo the shift.

        Args:
            exception_date: Cutoff date (date or YYYY-MM-DD)
            reason: Human-readable cause (e.g. 'Heavy rain')
            delay_days: Positive number of calendar days to shift
            exception_type: Exception category

        Returns:
            dict: {'global_exception_id': id, 'projects_affected': n}
        """
        cutoff = parse_date(exception_date)
        if cutoff is None:
            raise ValueError("exception_date is required")
        delay_days = _positive_int(delay_days, "delay_days")
        if not reason or not str(reason).strip():
            raise ValueError("reason is required")
        reason = str(reason).strip()

        with OperationContext("apply_global_delay", exception_date=cutoff.isoformat(), delay_days=delay_days) as op:
            with self.uow.transaction():
                global_exception_id = self.exception_store.create_global_exception(
                    cutoff, exception_type, reason, delay_days
                )

            projects_affected = 0
            for project in self.project_store.list_projects():
                project_id = project['id']
                try:
                    shifted = self._delay_project(project, global_exception_id, cutoff, reason, delay_days)
                except Exception as exc:
                    op.logger.error(
                        "Error applying delay to project",
                        project_id=project_id,
                        error=str(exc),
                        exc_info=True,
                    )
                    continue

                if not shifted:
                    continue
                projects_affected += 1
                self._sync_quietly(project_id)

            op.logger.info(
                "Global delay applied",
                global_exception_id=global_exception_id,
                projects_affected=projects_affected,
            )
            return {'global_exception_id': global_exception_id, 'projects_affected': projects_affected}

    def _delay_project(self, project, global_exception_id, cutoff: date, reason: str, delay_days: int) -> int:
        project_id = project['id']
        with self.uow.transaction():
            phases = self.phase_store.list_phases_starting_on_or_after(project_id, cutoff)
            if not phases:
                return 0

            shifts = DelayEngine.shift(phases, delay_days)
            for shift in shifts:
                self.phase_store.update_phase_dates(shift.phase_id, shift.new_start, shift.new_end)

            self.exception_store.create_project_exception(
                project_id,
                global_exception_id,
                [s.to_snapshot() for s in shifts],
                delay_days,
            )
            self.project_store.log_activity(
                project_id,
                type="schedule_delay",
                title=f"Schedule delayed {delay_days} day{'s' if delay_days != 1 else ''}",
                description=f"{reason} on {cutoff.isoformat()}: {len(shifts)} phase(s) moved",
                status="applied",
                project_name=project.get('name'),
            )

        logger.info("Delayed project phases", project_id=project_id, phases=len(shifts), delay_days=delay_days)
        return len(shifts)

    def shift_project_schedule(self, project_id, shift_days: int) -> Dict[str, Any]:
        """
        Move every phase of one project by a non-zero number of calendar days.

        Negative values pull the schedule earlier. The customer schedule is
        re-synced afterwards; a sync failure is logged, not raised.

        Returns:
            dict: project_id, phases_shifted, shift_days
        """
        if project_id is None or project_id == '':
            raise ValueError("project_id is required")
        shift_days = _whole_number(shift_days, "shift_days")
        if shift_days == 0:
            raise ValueError("shift_days must be non-zero")

        with OperationContext("shift_project_schedule", project_id=project_id, shift_days=shift_days):
            with self.uow.transaction():
                phases = self.phase_store.list_phases(project_id)
                if not phases:
                    raise ValueError("This project has no phases to shift")

                shifts = DelayEngine.shift(phases, shift_days)
                for shift in shifts:
                    self.phase_store.update_phase_dates(shift.phase_id, shift.new_start, shift.new_end)
                self.project_store.log_activity(
                    project_id,
                    type="schedule_shift",
                    title=f"Schedule shifted by {shift_days:+d} days",
                    description=f"{len(shifts)} phase(s) moved",
                    status="applied",
                )

            self._sync_quietly(project_id)
            return {'project_id': project_id, 'phases_shifted': len(shifts), 'shift_days': shift_days}

    def list_weather_days(self, start=None, end=None, exception_type: str = "weather") -> Dict[str, Dict[str, Any]]:
        """
        Weather exceptions in an inclusive date range keyed by ISO date.

        When several exceptions share a date the most recently created wins.
        """
        rows = self.exception_store.list_global_exceptions(
            exception_type=exception_type,
            start=parse_date(start),
            end=parse_date(end),
        )
        return {
            row['exception_date']: {'reason': row['reason'], 'delay_days': row['delay_days']}
            for row in rows
        }

    def _sync_quietly(self, project_id) -> None:
        try:
            self.sync_service.sync_project_schedule(project_id)
        except Exception as exc:
            logger.error("Schedule sync failed after shift", project_id=project_id, error=str(exc), exc_info=True)


def _whole_number(value, field_name: str) -> int:
    """Coerce to int, rejecting fractional floats instead of truncating them."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer")
    if isinstance(value, float) and value != number:
        raise ValueError(f"{field_name} must be an integer")
    return number


def _positive_int(value, field_name: str) -> int:
    number = _whole_number(value, field_name)
    if number <= 0:
        raise ValueError(f"{field_name} must be greater than 0")
    return number
