"""
Storage interfaces for the scheduling services.

Services receive these through their constructors so they can run against
the SQL repositories in production and in-memory fakes in tests.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from app.scheduling.engine import PhaseRecord, PhaseTemplateItem


class UnitOfWork(ABC):
    """Transaction boundary shared by the stores of one service call."""

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    @contextmanager
    def transaction(self):
        """Commit on success, roll back and re-raise on any error."""
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise


class HolidayStore(ABC):
    """Interface for the holiday calendar."""

    @abstractmethod
    def list_holiday_dates(self) -> Set[str]:
        """Every stored holiday date (ISO), including working-day overrides."""
        pass

    @abstractmethod
    def list_non_work_dates(self) -> Set[str]:
        """Stored holiday dates that are not flagged as working days."""
        pass

    @abstractmethod
    def list_holidays(self, year: Optional[int] = None) -> List[Dict[str, Any]]:
        """Holiday rows (holiday_date, name, is_working_day), date ascending."""
        pass

    @abstractmethod
    def add_holidays(self, holidays: Iterable[Tuple[str, str]]) -> int:
        """Insert (iso_date, name) rows. Returns the number inserted."""
        pass


class TemplateStore(ABC):
    """Interface for phase templates."""

    @abstractmethod
    def get_active_template_id(self, name: str) -> Optional[Any]:
        """Id of the active template with this name, or None."""
        pass

    @abstractmethod
    def list_template_items(self, template_id: Any) -> List[PhaseTemplateItem]:
        """Template items ordered by sort_order."""
        pass


class PhaseStore(ABC):
    """Interface for project phases and their dependencies."""

    @abstractmethod
    def insert_phases(self, rows: List[Dict[str, Any]]) -> List[PhaseRecord]:
        """Bulk insert phase rows, returning them with generated ids, in input order."""
        pass

    @abstractmethod
    def insert_dependencies(self, rows: List[Dict[str, Any]]) -> int:
        """Bulk insert dependency rows. Returns the number inserted."""
        pass

    @abstractmethod
    def list_phases(self, project_id: Any) -> List[PhaseRecord]:
        """All phases of a project ordered by start_date (missing dates last), then id."""
        pass

    @abstractmethod
    def list_published_phases(self, project_id: Any) -> List[PhaseRecord]:
        """Phases flagged publish_to_customer, same ordering as list_phases."""
        pass

    @abstractmethod
    def list_phases_starting_on_or_after(self, project_id: Any, cutoff: date) -> List[PhaseRecord]:
        pass

    @abstractmethod
    def update_phase_dates(self, phase_id: Any, start_date: Optional[date], end_date: Optional[date]) -> None:
        pass

    @abstractmethod
    def list_dependency_edges(self, project_id: Any) -> Set[Tuple[Any, Any]]:
        """(predecessor_phase_id, successor_phase_id) pairs for a project."""
        pass


class ScheduleStore(ABC):
    """Interface for the customer-facing project schedule projection."""

    @abstractmethod
    def upsert_project_schedule(
        self,
        project_id: Any,
        project_start_date: Optional[date],
        total_duration_days: int,
        schedule_data: List[Dict[str, Any]],
    ) -> None:
        """Replace the project's schedule row wholesale, creating it if absent."""
        pass

    @abstractmethod
    def get_project_schedule(self, project_id: Any) -> Optional[Dict[str, Any]]:
        pass


class ExceptionStore(ABC):
    """Interface for global and per-project schedule exceptions."""

    @abstractmethod
    def create_global_exception(self, exception_date: date, exception_type: str, reason: str, delay_days: int) -> Any:
        """Insert a global exception and return its id."""
        pass

    @abstractmethod
    def create_project_exception(
        self,
        project_id: Any,
        global_exception_id: Any,
        phases_affected: List[Dict[str, Any]],
        delay_applied_days: int,
    ) -> Any:
        pass

    @abstractmethod
    def list_global_exceptions(
        self,
        exception_type: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Global exceptions in an inclusive date range, ordered by date then id."""
        pass


class ProjectStore(ABC):
    """Interface for project lookup and the project activity feed."""

    @abstractmethod
    def list_projects(self) -> List[Dict[str, Any]]:
        """Every project as {'id', 'name'}, ordered by id."""
        pass

    @abstractmethod
    def log_activity(
        self,
        project_id: Any,
        type: str,
        title: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
        project_name: Optional[str] = None,
    ) -> None:
        pass
