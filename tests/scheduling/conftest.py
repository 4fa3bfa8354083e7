"""
Shared fixtures for the scheduling tests.
"""
import pytest

from app.scheduling.engine import PhaseTemplateItem
from app.scheduling.service import (
    GlobalDelayService,
    HolidayService,
    PhaseScheduleService,
    ScheduleSyncService,
)
from fakes import (
    FakeDatabase,
    FakeExceptionStore,
    FakeHolidayStore,
    FakePhaseStore,
    FakeProjectStore,
    FakeScheduleStore,
    FakeTemplateStore,
    FakeUnitOfWork,
)


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def uow(fake_db):
    return FakeUnitOfWork(fake_db)


@pytest.fixture
def holiday_service(fake_db, uow):
    return HolidayService(FakeHolidayStore(fake_db), uow)


@pytest.fixture
def phase_service(fake_db, uow):
    return PhaseScheduleService(
        FakeTemplateStore(fake_db),
        FakeHolidayStore(fake_db),
        FakePhaseStore(fake_db),
        uow,
        default_template="Barndominium",
    )


@pytest.fixture
def sync_service(fake_db, uow):
    return ScheduleSyncService(
        FakePhaseStore(fake_db),
        FakeScheduleStore(fake_db),
        uow,
        holiday_store=FakeHolidayStore(fake_db),
    )


@pytest.fixture
def delay_service(fake_db, uow, sync_service):
    return GlobalDelayService(
        FakePhaseStore(fake_db),
        FakeExceptionStore(fake_db),
        FakeProjectStore(fake_db),
        sync_service,
        uow,
    )


@pytest.fixture
def foundation_framing_items():
    """Two-item template: Framing follows Foundation with a one-day lag."""
    return [
        PhaseTemplateItem(id=101, name="Foundation", default_duration_days=5, default_color="#8B4513", sort_order=1),
        PhaseTemplateItem(
            id=102, name="Framing", default_duration_days=10, default_color="#DEB887",
            predecessor_item_id=101, lag_days=1, sort_order=2,
        ),
    ]


@pytest.fixture
def app():
    """Create Flask application for testing."""
    from app import create_app
    from app.config import TestingConfig
    from app.models import db

    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
