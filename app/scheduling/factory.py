"""Builds SQL-backed scheduling services from application config."""
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from app.scheduling.repositories import (
    SqlAlchemyExceptionStore,
    SqlAlchemyHolidayStore,
    SqlAlchemyPhaseStore,
    SqlAlchemyProjectStore,
    SqlAlchemyScheduleStore,
    SqlAlchemyTemplateStore,
    SqlAlchemyUnitOfWork,
)
from app.scheduling.service import (
    GlobalDelayService,
    HolidayService,
    PhaseScheduleService,
    ScheduleSyncService,
)


@dataclass
class SchedulingServices:
    holidays: HolidayService
    phases: PhaseScheduleService
    sync: ScheduleSyncService
    delays: GlobalDelayService


def build_services(config: Optional[Mapping[str, Any]] = None) -> SchedulingServices:
    """
    Wire every scheduling service to the Flask-SQLAlchemy session.

    Must be called inside an application context.
    """
    config = config or {}
    uow = SqlAlchemyUnitOfWork()
    holiday_store = SqlAlchemyHolidayStore()
    phase_store = SqlAlchemyPhaseStore()

    sync = ScheduleSyncService(
        phase_store,
        SqlAlchemyScheduleStore(),
        uow,
        holiday_store=holiday_store,
        use_holidays=bool(config.get("SYNC_SCHEDULE_USES_HOLIDAYS", False)),
    )
    return SchedulingServices(
        holidays=HolidayService(holiday_store, uow),
        phases=PhaseScheduleService(
            SqlAlchemyTemplateStore(),
            holiday_store,
            phase_store,
            uow,
            default_template=config.get("DEFAULT_PHASE_TEMPLATE", "Barndominium"),
            phase_status=config.get("DEFAULT_PHASE_STATUS", "Planned"),
        ),
        sync=sync,
        delays=GlobalDelayService(
            phase_store,
            SqlAlchemyExceptionStore(),
            SqlAlchemyProjectStore(),
            sync,
            uow,
        ),
    )
