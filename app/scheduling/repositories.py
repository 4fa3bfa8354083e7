"""
Flask-SQLAlchemy implementations of the scheduling stores.

Repositories only add and flush; committing belongs to SqlAlchemyUnitOfWork so
that one service call maps to one transaction.
"""
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.logging_config import get_logger
from app.models import (
    Activity,
    GlobalException,
    Holiday,
    PhaseDependency,
    PhaseTemplate,
    PhaseTemplateItem as PhaseTemplateItemModel,
    Project,
    ProjectException,
    ProjectPhase,
    ProjectSchedule,
    db,
)
from app.scheduling.calendar import parse_date
from app.scheduling.engine import PhaseRecord, PhaseTemplateItem
from app.scheduling.exceptions import StorageError
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


@contextmanager
def storage_errors(operation: str):
    """Re-raise SQLAlchemy failures as StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage operation failed", operation=operation, error=str(exc))
        raise StorageError(f"{operation} failed: {exc}", original=exc) from exc


def _to_phase_record(phase: ProjectPhase) -> PhaseRecord:
    return PhaseRecord(
        id=phase.id,
        project_id=phase.project_id,
        name=phase.name,
        start_date=phase.start_date,
        end_date=phase.end_date,
        duration_days=phase.duration_days or 0,
        publish_to_customer=bool(phase.publish_to_customer),
        color=phase.color,
        template_item_id=phase.template_item_id,
        status=phase.status,
    )


def _phase_ordering():
    return (ProjectPhase.start_date.is_(None), ProjectPhase.start_date, ProjectPhase.id)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Commits or rolls back the Flask-SQLAlchemy session."""

    def __init__(self, session=None):
        self.session = session or db.session

    def commit(self) -> None:
        with storage_errors("commit"):
            self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SqlAlchemyHolidayStore(HolidayStore):

    def list_holiday_dates(self) -> Set[str]:
        with storage_errors("list holiday dates"):
            return {h.holiday_date.isoformat() for h in Holiday.query.all()}

    def list_non_work_dates(self) -> Set[str]:
        with storage_errors("list non-work dates"):
            rows = Holiday.query.filter(Holiday.is_working_day.is_(False)).all()
            return {h.holiday_date.isoformat() for h in rows}

    def list_holidays(self, year: Optional[int] = None) -> List[Dict[str, Any]]:
        with storage_errors("list holidays"):
            query = Holiday.query
            if year is not None:
                query = query.filter(
                    Holiday.holiday_date >= date(year, 1, 1),
                    Holiday.holiday_date <= date(year, 12, 31),
                )
            return [h.to_dict() for h in query.order_by(Holiday.holiday_date).all()]

    def add_holidays(self, holidays: Iterable[Tuple[str, str]]) -> int:
        rows = [Holiday(holiday_date=parse_date(iso_date), name=name) for iso_date, name in holidays]
        with storage_errors("insert holidays"):
            db.session.add_all(rows)
            db.session.flush()
        return len(rows)


class SqlAlchemyTemplateStore(TemplateStore):

    def get_active_template_id(self, name: str) -> Optional[Any]:
        with storage_errors("fetch phase template"):
            template = PhaseTemplate.query.filter_by(name=name, is_active=True).first()
        return template.id if template else None

    def list_template_items(self, template_id: Any) -> List[PhaseTemplateItem]:
        with storage_errors("fetch phase template items"):
            items = (
                PhaseTemplateItemModel.query
                .filter_by(template_id=template_id)
                .order_by(PhaseTemplateItemModel.sort_order, PhaseTemplateItemModel.id)
                .all()
            )
        return [
            PhaseTemplateItem(
                id=item.id,
                name=item.name,
                default_duration_days=item.default_duration_days or 0,
                default_color=item.default_color,
                predecessor_item_id=item.predecessor_item_id,
                lag_days=item.lag_days or 0,
                sort_order=item.sort_order or 0,
            )
            for item in items
        ]


class SqlAlchemyPhaseStore(PhaseStore):

    def insert_phases(self, rows: List[Dict[str, Any]]) -> List[PhaseRecord]:
        phases = [
            ProjectPhase(
                project_id=row['project_id'],
                template_item_id=row.get('template_item_id'),
                name=row['name'],
                status=row.get('status') or "Planned",
                start_date=parse_date(row.get('start_date')),
                end_date=parse_date(row.get('end_date')),
                duration_days=row.get('duration_days') or 0,
                publish_to_customer=bool(row.get('publish_to_customer')),
                color=row.get('color'),
            )
            for row in rows
        ]
        with storage_errors("insert project phases"):
            db.session.add_all(phases)
            db.session.flush()  # Populate generated ids without committing
        return [_to_phase_record(p) for p in phases]

    def insert_dependencies(self, rows: List[Dict[str, Any]]) -> int:
        dependencies = [
            PhaseDependency(
                project_id=row['project_id'],
                predecessor_phase_id=row['predecessor_phase_id'],
                successor_phase_id=row['successor_phase_id'],
                type=row.get('type') or "FS",
                lag_days=row.get('lag_days') or 0,
            )
            for row in rows
        ]
        with storage_errors("insert phase dependencies"):
            db.session.add_all(dependencies)
            db.session.flush()
        return len(dependencies)

    def list_phases(self, project_id: Any) -> List[PhaseRecord]:
        with storage_errors("list project phases"):
            phases = (
                ProjectPhase.query
                .filter_by(project_id=project_id)
                .order_by(*_phase_ordering())
                .all()
            )
        return [_to_phase_record(p) for p in phases]

    def list_published_phases(self, project_id: Any) -> List[PhaseRecord]:
        with storage_errors("list published phases"):
            phases = (
                ProjectPhase.query
                .filter_by(project_id=project_id, publish_to_customer=True)
                .order_by(*_phase_ordering())
                .all()
            )
        return [_to_phase_record(p) for p in phases]

    def list_phases_starting_on_or_after(self, project_id: Any, cutoff: date) -> List[PhaseRecord]:
        with storage_errors("list phases after cutoff"):
            phases = (
                ProjectPhase.query
                .filter(ProjectPhase.project_id == project_id, ProjectPhase.start_date >= cutoff)
                .order_by(*_phase_ordering())
                .all()
            )
        return [_to_phase_record(p) for p in phases]

    def update_phase_dates(self, phase_id: Any, start_date: Optional[date], end_date: Optional[date]) -> None:
        with storage_errors("update phase dates"):
            phase = db.session.get(ProjectPhase, phase_id)
            if phase is None:
                raise StorageError(f"Project phase {phase_id} not found")
            phase.start_date = start_date
            phase.end_date = end_date
            phase.updated_at = datetime.utcnow()
            db.session.flush()

    def list_dependency_edges(self, project_id: Any) -> Set[Tuple[Any, Any]]:
        with storage_errors("list phase dependencies"):
            rows = PhaseDependency.query.filter_by(project_id=project_id).all()
        return {(d.predecessor_phase_id, d.successor_phase_id) for d in rows}


class SqlAlchemyScheduleStore(ScheduleStore):

    def upsert_project_schedule(
        self,
        project_id: Any,
        project_start_date: Optional[date],
        total_duration_days: int,
        schedule_data: List[Dict[str, Any]],
    ) -> None:
        with storage_errors("upsert project schedule"):
            schedule = ProjectSchedule.query.filter_by(project_id=project_id).first()
            if schedule is None:
                schedule = ProjectSchedule(project_id=project_id)
                db.session.add(schedule)
            schedule.project_start_date = project_start_date
            schedule.total_duration_days = total_duration_days
            # New list object so the JSON column is marked dirty
            schedule.schedule_data = list(schedule_data)
            schedule.updated_at = datetime.utcnow()
            db.session.flush()

    def get_project_schedule(self, project_id: Any) -> Optional[Dict[str, Any]]:
        with storage_errors("fetch project schedule"):
            schedule = ProjectSchedule.query.filter_by(project_id=project_id).first()
        return schedule.to_dict() if schedule else None


class SqlAlchemyExceptionStore(ExceptionStore):

    def create_global_exception(self, exception_date: date, exception_type: str, reason: str, delay_days: int) -> Any:
        exception = GlobalException(
            exception_date=exception_date,
            exception_type=exception_type,
            reason=reason,
            delay_days=delay_days,
        )
        with storage_errors("insert global exception"):
            db.session.add(exception)
            db.session.flush()
        return exception.id

    def create_project_exception(
        self,
        project_id: Any,
        global_exception_id: Any,
        phases_affected: List[Dict[str, Any]],
        delay_applied_days: int,
    ) -> Any:
        record = ProjectException(
            project_id=project_id,
            global_exception_id=global_exception_id,
            phases_affected=phases_affected,
            delay_applied_days=delay_applied_days,
            applied_at=datetime.utcnow(),
        )
        with storage_errors("insert project exception"):
            db.session.add(record)
            db.session.flush()
        return record.id

    def list_global_exceptions(
        self,
        exception_type: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        with storage_errors("list global exceptions"):
            query = GlobalException.query
            if exception_type:
                query = query.filter(GlobalException.exception_type == exception_type)
            if start:
                query = query.filter(GlobalException.exception_date >= start)
            if end:
                query = query.filter(GlobalException.exception_date <= end)
            rows = query.order_by(GlobalException.exception_date, GlobalException.id).all()
        return [r.to_dict() for r in rows]


class SqlAlchemyProjectStore(ProjectStore):

    def list_projects(self) -> List[Dict[str, Any]]:
        with storage_errors("list projects"):
            projects = Project.query.order_by(Project.id).all()
        return [{'id': p.id, 'name': p.name} for p in projects]

    def log_activity(
        self,
        project_id: Any,
        type: str,
        title: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
        project_name: Optional[str] = None,
    ) -> None:
        with storage_errors("insert activity"):
            db.session.add(Activity(
                project_id=project_id,
                project_name=project_name,
                type=type,
                title=title,
                description=description,
                status=status,
                time=datetime.utcnow(),
            ))
            db.session.flush()
