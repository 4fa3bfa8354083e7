"""
Pure business logic engine for phase scheduling.
Contains no database dependencies - works with plain data structures.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AbstractSet, Any, Dict, List, Optional

from app.scheduling.calendar import parse_date, to_iso
from app.scheduling.exceptions import InvalidTemplateError
from app.scheduling.workdays import ONE_DAY, add_business_days, add_lag, add_workdays, next_workday

DEPENDENCY_TYPE_FS = "FS"


@dataclass(frozen=True)
class PhaseTemplateItem:
    """Value object for one row of a named building-type template."""
    id: Any
    name: str
    default_duration_days: int = 0
    default_color: Optional[str] = None
    predecessor_item_id: Any = None
    lag_days: int = 0
    sort_order: int = 0


@dataclass
class ScheduledPhase:
    """A template item placed on the calendar, before persistence."""
    item: PhaseTemplateItem
    start: date
    end: date
    duration: int


@dataclass
class PhaseRecord:
    """Value object for a persisted project phase."""
    id: Any
    project_id: Any
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_days: int = 0
    publish_to_customer: bool = False
    color: Optional[str] = None
    template_item_id: Any = None
    status: str = "Planned"


@dataclass
class PhaseShift:
    """Before/after dates for one phase moved by a delay."""
    phase_id: Any
    name: str
    original_start: Optional[date]
    new_start: Optional[date]
    original_end: Optional[date]
    new_end: Optional[date]

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            'phaseId': self.phase_id,
            'name': self.name,
            'originalStart': to_iso(self.original_start) if self.original_start else None,
            'newStart': to_iso(self.new_start) if self.new_start else None,
            'originalEnd': to_iso(self.original_end) if self.original_end else None,
            'newEnd': to_iso(self.new_end) if self.new_end else None,
        }


@dataclass
class CustomerSchedule:
    """Compact customer-facing schedule derived from published phases."""
    project_start_date: Optional[date]
    total_duration_days: int
    schedule_data: List[Dict[str, Any]] = field(default_factory=list)


class PhaseScheduleEngine:
    """Dependency-aware workday scheduling of template items."""

    @staticmethod
    def validate_template(items: List[PhaseTemplateItem]) -> None:
        """
        Check that template items form an acyclic graph ordered predecessor-first.

        Raises:
            InvalidTemplateError: On duplicate ids, unknown or self predecessors,
                cycles, or a predecessor listed after its successor
        """
        position = {}
        for index, item in enumerate(items):
            if item.id in position:
                raise InvalidTemplateError(f"Duplicate template item id: {item.id}", item_id=item.id)
            position[item.id] = index

        by_id = {item.id: item for item in items}

        for item in items:
            pred_id = item.predecessor_item_id
            if pred_id is None:
                continue
            if pred_id == item.id:
                raise InvalidTemplateError(f"Template item '{item.name}' is its own predecessor", item_id=item.id)
            if pred_id not in by_id:
                raise InvalidTemplateError(
                    f"Template item '{item.name}' references unknown predecessor {pred_id}",
                    item_id=item.id,
                )

        # Each item has at most one predecessor, so a cycle shows up as a chain
        # that revisits an item.
        for item in items:
            visited = {item.id}
            current = by_id[item.id]
            while current.predecessor_item_id is not None:
                pred_id = current.predecessor_item_id
                if pred_id in visited:
                    raise InvalidTemplateError(
                        f"Dependency cycle through template item '{item.name}'",
                        item_id=item.id,
                    )
                visited.add(pred_id)
                current = by_id[pred_id]

        for item in items:
            pred_id = item.predecessor_item_id
            if pred_id is not None and position[pred_id] > position[item.id]:
                raise InvalidTemplateError(
                    f"Template item '{item.name}' is ordered before its predecessor '{by_id[pred_id].name}'",
                    item_id=item.id,
                )

    @staticmethod
    def schedule(
        items: List[PhaseTemplateItem],
        holidays: Optional[AbstractSet[str]],
        project_start: date,
    ) -> List[ScheduledPhase]:
        """
        Place each template item on the calendar, in list order.

        Items with a predecessor start `lag_days` workdays after it ends. Items
        without one follow whatever was scheduled just before them (a single
        crew timeline).

        Args:
            items: Template items, predecessor-before-successor
            holidays: ISO dates treated as non-work days
            project_start: Requested project start (moved forward to a workday)

        Returns:
            list of ScheduledPhase in input order
        """
        current = next_workday(project_start, holidays)
        scheduled: List[ScheduledPhase] = []
        by_item_id: Dict[Any, ScheduledPhase] = {}

        for item in items:
            if item.predecessor_item_id is not None:
                predecessor = by_item_id.get(item.predecessor_item_id)
                if predecessor is not None:
                    current = add_lag(predecessor.end, max(0, item.lag_days or 0), holidays)

            current = next_workday(current, holidays)

            duration = max(0, item.default_duration_days or 0)
            start = current
            end = add_workdays(start, duration, holidays) if duration > 0 else start

            entry = ScheduledPhase(item=item, start=start, end=end, duration=duration)
            scheduled.append(entry)
            by_item_id[item.id] = entry

            current = next_workday(end + ONE_DAY, holidays)

        return scheduled

    @staticmethod
    def build_phase_rows(
        project_id,
        scheduled: List[ScheduledPhase],
        publish_to_customer: bool,
        status: str = "Planned",
    ) -> List[Dict[str, Any]]:
        """Map scheduled phases to project phase insert rows."""
        return [
            {
                'project_id': project_id,
                'template_item_id': s.item.id,
                'name': s.item.name,
                'status': status,
                'start_date': to_iso(s.start),
                'end_date': to_iso(s.end),
                'duration_days': s.duration,
                'publish_to_customer': bool(publish_to_customer),
                'color': s.item.default_color or None,
            }
            for s in scheduled
        ]

    @staticmethod
    def build_dependency_rows(
        project_id,
        items: List[PhaseTemplateItem],
        phase_ids_by_item: Dict[Any, Any],
        existing_edges: Optional[AbstractSet] = None,
    ) -> List[Dict[str, Any]]:
        """
        Mirror the template's predecessor edges onto concrete phase ids.

        Items whose predecessor or own phase id is missing are skipped, as are
        (predecessor, successor) pairs already in `existing_edges`.
        """
        existing_edges = existing_edges or set()
        rows = []
        for item in items:
            if item.predecessor_item_id is None:
                continue
            pred_phase_id = phase_ids_by_item.get(item.predecessor_item_id)
            succ_phase_id = phase_ids_by_item.get(item.id)
            if pred_phase_id is None or succ_phase_id is None:
                continue
            if (pred_phase_id, succ_phase_id) in existing_edges:
                continue
            rows.append({
                'project_id': project_id,
                'predecessor_phase_id': pred_phase_id,
                'successor_phase_id': succ_phase_id,
                'type': DEPENDENCY_TYPE_FS,
                'lag_days': item.lag_days or 0,
            })
        return rows


class CustomerScheduleEngine:
    """Derives the customer-facing schedule from published phases."""

    @staticmethod
    def visible_phases(phases: List[PhaseRecord]) -> List[PhaseRecord]:
        """Published phases with a positive duration, order preserved."""
        return [
            p for p in phases
            if p.publish_to_customer and (p.duration_days or 0) > 0
        ]

    @staticmethod
    def build(phases: List[PhaseRecord], holidays: Optional[AbstractSet[str]] = None) -> CustomerSchedule:
        """
        Build a contiguous, back-to-back timeline from phase durations.

        Stored dates only anchor the timeline start; each phase then starts the
        day after the previous one ends, and ends `duration_days` business days
        after its start (weekends skipped, plus `holidays` when given).

        Args:
            phases: Project phases, already ordered by start date
            holidays: Optional ISO dates to skip when computing end dates

        Returns:
            CustomerSchedule
        """
        active = CustomerScheduleEngine.visible_phases(phases)

        stored_dates = [
            d for p in active for d in (p.start_date, p.end_date) if d is not None
        ]
        project_start = min(stored_dates) if stored_dates else None

        schedule_data = []
        current = project_start
        for phase in active:
            workdays = phase.duration_days or 0
            start = current
            end = None
            if current is not None and workdays > 0:
                end = add_business_days(current, workdays, holidays)
                current = end + ONE_DAY

            schedule_data.append({
                'name': phase.name,
                'workdays': workdays,
                'startDate': to_iso(start) if start else None,
                'endDate': to_iso(end) if end else None,
                'color': phase.color,
            })

        derived = [
            parse_date(d) for entry in schedule_data
            for d in (entry['startDate'], entry['endDate']) if d
        ]
        if derived:
            total_duration_days = max(0, round((max(derived) - min(derived)) / timedelta(days=1)) + 1)
        else:
            total_duration_days = 0

        return CustomerSchedule(
            project_start_date=project_start,
            total_duration_days=total_duration_days,
            schedule_data=schedule_data,
        )


class DelayEngine:
    """Calendar-day shifting of phase dates."""

    @staticmethod
    def phases_on_or_after(phases: List[PhaseRecord], cutoff: date) -> List[PhaseRecord]:
        return [p for p in phases if p.start_date is not None and p.start_date >= cutoff]

    @staticmethod
    def shift(phases: List[PhaseRecord], days: int) -> List[PhaseShift]:
        """
        Move every phase by `days` calendar days (no workday skipping).

        Missing dates stay missing.
        """
        delta = timedelta(days=days)
        shifts = []
        for phase in phases:
            shifts.append(PhaseShift(
                phase_id=phase.id,
                name=phase.name,
                original_start=phase.start_date,
                new_start=phase.start_date + delta if phase.start_date else None,
                original_end=phase.end_date,
                new_end=phase.end_date + delta if phase.end_date else None,
            ))
        return shifts
