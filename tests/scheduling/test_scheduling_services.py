"""
Tests for the scheduling service layer.
The services run against in-memory stores - no Flask or database required.
"""
from datetime import date

import pytest

from app.scheduling.exceptions import InvalidTemplateError, StorageError, TemplateNotFoundError
from app.scheduling.engine import PhaseTemplateItem
from app.scheduling.service import ScheduleSyncService
from fakes import FakeHolidayStore, FakePhaseStore, FakeScheduleStore, add_phase, add_template


def _phases_by_name(fake_db, project_id):
    return {p.name: p for p in fake_db.phases.values() if p.project_id == project_id}


# ==============================================================================
# PHASE SCHEDULE SERVICE TESTS
# ==============================================================================

class TestCreatePhasesFromTemplate:

    def test_creates_phases_and_dependencies(self, phase_service, fake_db, foundation_framing_items):
        """Test that phases and a lagged FS dependency are created from the template."""
        add_template(fake_db, "Barndominium", foundation_framing_items)

        result = phase_service.create_phases_from_template(1, "2025-01-06")

        assert result == {'created': 2, 'dependencies': 1}
        phases = _phases_by_name(fake_db, 1)
        assert phases["Foundation"].start_date == date(2025, 1, 6)
        assert phases["Foundation"].end_date == date(2025, 1, 10)
        assert phases["Framing"].start_date == date(2025, 1, 13)
        assert phases["Framing"].end_date == date(2025, 1, 24)
        assert phases["Framing"].status == "Planned"
        assert phases["Framing"].publish_to_customer is False

        dependency = fake_db.dependencies[0]
        assert dependency['predecessor_phase_id'] == phases["Foundation"].id
        assert dependency['successor_phase_id'] == phases["Framing"].id
        assert dependency['type'] == "FS"
        assert dependency['lag_days'] == 1

    def test_named_template_and_publish_flag(self, phase_service, fake_db, foundation_framing_items):
        """Test that a named template and the publish flag are honoured."""
        add_template(fake_db, "Shop", foundation_framing_items)

        phase_service.create_phases_from_template(3, date(2025, 1, 6), template_name="Shop", publish_to_customer=True)

        assert all(p.publish_to_customer for p in fake_db.phases.values())

    def test_stored_holidays_are_respected(self, phase_service, fake_db, foundation_framing_items):
        """Test that stored non-working holidays push phase dates out."""
        add_template(fake_db, "Barndominium", foundation_framing_items)
        fake_db.holidays["2025-01-08"] = {'name': "Closed", 'is_working_day': False}
        fake_db.holidays["2025-01-07"] = {'name': "Open anyway", 'is_working_day': True}

        phase_service.create_phases_from_template(1, "2025-01-06")

        phases = _phases_by_name(fake_db, 1)
        assert phases["Foundation"].end_date == date(2025, 1, 13)
        assert phases["Framing"].start_date == date(2025, 1, 14)
        assert phases["Framing"].end_date == date(2025, 1, 27)

    def test_unknown_template_raises(self, phase_service, fake_db):
        """Test that a missing template raises TemplateNotFoundError."""
        with pytest.raises(TemplateNotFoundError) as exc_info:
            phase_service.create_phases_from_template(1, "2025-01-06")

        assert str(exc_info.value) == "Template not found: Barndominium"
        assert fake_db.phases == {}

    def test_inactive_template_is_not_found(self, phase_service, fake_db, foundation_framing_items):
        """Test that an inactive template is treated as missing."""
        add_template(fake_db, "Barndominium", foundation_framing_items, is_active=False)

        with pytest.raises(TemplateNotFoundError):
            phase_service.create_phases_from_template(1, "2025-01-06")

    def test_empty_template_creates_nothing(self, phase_service, fake_db):
        """Test that an empty template creates no phases."""
        add_template(fake_db, "Barndominium", [])

        assert phase_service.create_phases_from_template(1, "2025-01-06") == {'created': 0, 'dependencies': 0}
        assert fake_db.phases == {}

    def test_invalid_template_writes_nothing(self, phase_service, fake_db):
        """Test that an invalid template raises before anything is written."""
        add_template(fake_db, "Barndominium", [
            PhaseTemplateItem(id=1, name="A", default_duration_days=1, predecessor_item_id=2, sort_order=1),
            PhaseTemplateItem(id=2, name="B", default_duration_days=1, predecessor_item_id=1, sort_order=2),
        ])

        with pytest.raises(InvalidTemplateError):
            phase_service.create_phases_from_template(1, "2025-01-06")
        assert fake_db.phases == {}

    def test_missing_arguments_raise_value_error(self, phase_service):
        """Test that a missing project or start date raises ValueError."""
        with pytest.raises(ValueError):
            phase_service.create_phases_from_template(None, "2025-01-06")
        with pytest.raises(ValueError):
            phase_service.create_phases_from_template(1, None)

    def test_dependency_failure_rolls_back_phases(self, phase_service, fake_db, uow, foundation_framing_items):
        """Test that a dependency insert failure rolls back the phases too."""
        add_template(fake_db, "Barndominium", foundation_framing_items)
        fake_db.fail_on.add('insert_dependencies')

        with pytest.raises(StorageError):
            phase_service.create_phases_from_template(1, "2025-01-06")

        assert fake_db.phases == {}
        assert fake_db.dependencies == []
        assert uow.rollbacks == 1
        assert uow.commits == 0


    def test_failed_template_read_is_rolled_back(self, phase_service, fake_db, uow, foundation_framing_items):
        """Test that a failed template read rolls back so a retry can create the phases."""
        add_template(fake_db, "Barndominium", foundation_framing_items)
        fake_db.fail_once.add('list_template_items')

        with pytest.raises(StorageError):
            phase_service.create_phases_from_template(1, "2025-01-06")

        assert uow.rollbacks == 1
        assert phase_service.create_phases_from_template(1, "2025-01-06") == {'created': 2, 'dependencies': 1}


class TestReconcileDependencies:

    def test_recreates_missing_dependencies(self, phase_service, fake_db, foundation_framing_items):
        """Test that reconcile recreates dependencies lost after phase creation."""
        add_template(fake_db, "Barndominium", foundation_framing_items)
        phase_service.create_phases_from_template(1, "2025-01-06")
        fake_db.dependencies.clear()

        assert phase_service.reconcile_dependencies(1) == 1
        assert len(fake_db.dependencies) == 1

    def test_nothing_to_do_when_complete(self, phase_service, fake_db, foundation_framing_items):
        """Test that reconcile does nothing when every dependency exists."""
        add_template(fake_db, "Barndominium", foundation_framing_items)
        phase_service.create_phases_from_template(1, "2025-01-06")

        assert phase_service.reconcile_dependencies(1) == 0
        assert len(fake_db.dependencies) == 1


# ==============================================================================
# SCHEDULE SYNC SERVICE TESTS
# ==============================================================================

class TestScheduleSync:

    @pytest.fixture
    def published_phases(self, fake_db):
        add_phase(fake_db, 1, "Site Prep", "2025-01-06", "2025-01-10", 5, color="#aaa")
        add_phase(fake_db, 1, "Internal QA", "2025-01-08", "2025-01-09", 2, publish=False)
        add_phase(fake_db, 1, "Framing", "2025-01-13", "2025-01-14", 2, color="#bbb")

    def test_sync_writes_schedule(self, sync_service, fake_db, published_phases):
        """Test that sync writes the customer schedule from published phases."""
        result = sync_service.sync_project_schedule(1)

        assert result == {
            'project_id': 1,
            'count': 2,
            'project_start_date': "2025-01-06",
            'total_duration_days': 11,
        }
        row = fake_db.schedules[1]
        assert row['project_start_date'] == "2025-01-06"
        assert [e['endDate'] for e in row['schedule_data']] == ["2025-01-13", "2025-01-16"]

    def test_sync_is_idempotent(self, sync_service, fake_db, published_phases):
        """Test that syncing twice leaves the same schedule row."""
        sync_service.sync_project_schedule(1)
        first = dict(fake_db.schedules[1])
        sync_service.sync_project_schedule(1)

        assert fake_db.schedules[1] == first
        assert len(fake_db.schedules) == 1

    def test_missing_project_id(self, sync_service):
        """Test that sync without a project id raises ValueError."""
        with pytest.raises(ValueError, match="Missing projectId"):
            sync_service.sync_project_schedule('')

    def test_project_without_published_phases(self, sync_service, fake_db):
        """Test that a project without published phases gets an empty schedule."""
        add_phase(fake_db, 1, "Internal QA", "2025-01-08", "2025-01-09", 2, publish=False)

        result = sync_service.sync_project_schedule(1)

        assert result['count'] == 0
        assert result['project_start_date'] is None
        assert fake_db.schedules[1]['total_duration_days'] == 0

    def test_weekend_only_by_default(self, sync_service, fake_db, published_phases):
        """Test that the customer timeline ignores holidays by default."""
        fake_db.holidays["2025-01-08"] = {'name': "Closed", 'is_working_day': False}

        sync_service.sync_project_schedule(1)

        assert fake_db.schedules[1]['schedule_data'][0]['endDate'] == "2025-01-13"

    def test_holidays_used_when_enabled(self, fake_db, uow, published_phases):
        """Test that the customer timeline skips holidays when enabled."""
        fake_db.holidays["2025-01-08"] = {'name': "Closed", 'is_working_day': False}
        service = ScheduleSyncService(
            FakePhaseStore(fake_db),
            FakeScheduleStore(fake_db),
            uow,
            holiday_store=FakeHolidayStore(fake_db),
            use_holidays=True,
        )

        service.sync_project_schedule(1)

        assert fake_db.schedules[1]['schedule_data'][0]['endDate'] == "2025-01-14"

    def test_failed_read_is_rolled_back(self, sync_service, fake_db, uow, published_phases):
        """Test that a failed phase read rolls back and the next sync succeeds."""
        fake_db.fail_once.add('list_published_phases')

        with pytest.raises(StorageError):
            sync_service.sync_project_schedule(1)

        assert uow.rollbacks == 1
        assert fake_db.schedules == {}
        assert sync_service.sync_project_schedule(1)['count'] == 2

    def test_get_project_schedule(self, sync_service, published_phases):
        """Test that the stored schedule is returned after a sync."""
        assert sync_service.get_project_schedule(1) is None

        sync_service.sync_project_schedule(1)

        assert sync_service.get_project_schedule(1)['total_duration_days'] == 11


# ==============================================================================
# GLOBAL DELAY SERVICE TESTS
# ==============================================================================

class TestGlobalDelay:

    @pytest.fixture
    def projects(self, fake_db):
        fake_db.projects = [{'id': 1, 'name': "Smith Barndo"}, {'id': 2, 'name': "Jones Shop"}]
        return {
            'a': add_phase(fake_db, 1, "A", "2025-01-01", "2025-01-03", 3),
            'b': add_phase(fake_db, 1, "B", "2025-01-10", "2025-01-14", 3),
            'c': add_phase(fake_db, 1, "C", "2025-01-20", "2025-01-24", 5),
            'old': add_phase(fake_db, 2, "Old", "2024-12-01", "2024-12-05", 5),
        }

    def test_shifts_phases_on_or_after_cutoff(self, delay_service, fake_db, projects):
        """Test that a global delay moves only phases on or after the cutoff."""
        result = delay_service.apply_global_delay("2025-01-05", "Heavy rain", 3)

        assert result['projects_affected'] == 1
        phases = fake_db.phases
        assert phases[projects['a'].id].start_date == date(2025, 1, 1)
        assert phases[projects['b'].id].start_date == date(2025, 1, 13)
        assert phases[projects['b'].id].end_date == date(2025, 1, 17)
        assert phases[projects['c'].id].start_date == date(2025, 1, 23)
        assert phases[projects['old'].id].start_date == date(2024, 12, 1)

    def test_records_exceptions_and_activity(self, delay_service, fake_db, projects):
        """Test that a global delay records the exception, audit snapshot and activity."""
        result = delay_service.apply_global_delay("2025-01-05", "Heavy rain", 3)

        assert fake_db.global_exceptions[0]['id'] == result['global_exception_id']
        assert fake_db.global_exceptions[0]['exception_type'] == "weather"

        assert len(fake_db.project_exceptions) == 1
        record = fake_db.project_exceptions[0]
        assert record['project_id'] == 1
        assert record['delay_applied_days'] == 3
        assert [s['name'] for s in record['phases_affected']] == ["B", "C"]
        assert record['phases_affected'][0]['originalStart'] == "2025-01-10"
        assert record['phases_affected'][0]['newStart'] == "2025-01-13"

        assert len(fake_db.activities) == 1
        assert fake_db.activities[0]['type'] == "schedule_delay"
        assert fake_db.activities[0]['project_name'] == "Smith Barndo"

    def test_affected_projects_are_resynced(self, delay_service, fake_db, projects):
        """Test that only shifted projects are re-synced."""
        delay_service.apply_global_delay("2025-01-05", "Heavy rain", 3)

        assert 1 in fake_db.schedules
        assert 2 not in fake_db.schedules

    def test_failing_project_does_not_stop_others(self, delay_service, fake_db, projects):
        """Test that a failing project is rolled back and the others are still delayed."""
        add_phase(fake_db, 2, "New", "2025-01-15", "2025-01-16", 2)
        fake_db.fail_on.add(f"update_phase_dates:{projects['c'].id}")

        result = delay_service.apply_global_delay("2025-01-05", "Heavy rain", 3)

        assert result['projects_affected'] == 1
        # project 1 rolled back as a whole
        assert fake_db.phases[projects['b'].id].start_date == date(2025, 1, 10)
        assert [r['project_id'] for r in fake_db.project_exceptions] == [2]
        assert len(fake_db.global_exceptions) == 1

    def test_failed_schedule_read_does_not_poison_the_next_project(self, delay_service, fake_db, uow, projects):
        """Test that a failed schedule read is rolled back so later projects still shift and sync."""
        late = add_phase(fake_db, 2, "New", "2025-01-15", "2025-01-16", 2)
        fake_db.fail_once.add('list_published_phases')

        result = delay_service.apply_global_delay("2025-01-05", "Heavy rain", 3)

        assert result['projects_affected'] == 2
        assert uow.rollbacks == 1
        assert fake_db.aborted is False
        assert fake_db.phases[projects['b'].id].start_date == date(2025, 1, 13)
        assert fake_db.phases[late.id].start_date == date(2025, 1, 18)
        assert 1 not in fake_db.schedules
        assert 2 in fake_db.schedules

    def test_sync_failure_keeps_the_shift(self, delay_service, fake_db, projects):
        """Test that a failed re-sync does not undo the delay."""
        fake_db.fail_on.add('upsert_project_schedule')

        result = delay_service.apply_global_delay("2025-01-05", "Heavy rain", 3)

        assert result['projects_affected'] == 1
        assert fake_db.phases[projects['b'].id].start_date == date(2025, 1, 13)
        assert fake_db.schedules == {}

    def test_no_projects(self, delay_service, fake_db):
        """Test that a delay with no projects still records the global exception."""
        result = delay_service.apply_global_delay(date(2025, 1, 5), "Heavy rain", 2)

        assert result['projects_affected'] == 0
        assert len(fake_db.global_exceptions) == 1

    @pytest.mark.parametrize("delay_days", [0, -1, "abc", None, 1.5])
    def test_invalid_delay_days(self, delay_service, fake_db, delay_days):
        """Test that a non-positive or non-integer delay is rejected before any write."""
        with pytest.raises(ValueError):
            delay_service.apply_global_delay("2025-01-05", "Heavy rain", delay_days)
        assert fake_db.global_exceptions == []

    def test_reason_and_date_required(self, delay_service, fake_db):
        """Test that a blank reason or missing date is rejected."""
        with pytest.raises(ValueError):
            delay_service.apply_global_delay("2025-01-05", "  ", 3)
        with pytest.raises(ValueError):
            delay_service.apply_global_delay(None, "Heavy rain", 3)
        assert fake_db.global_exceptions == []


class TestShiftProjectSchedule:

    def test_shifts_every_phase(self, delay_service, fake_db):
        """Test that a project shift moves every phase and re-syncs the schedule."""
        first = add_phase(fake_db, 1, "A", "2025-01-06", "2025-01-10", 5)
        second = add_phase(fake_db, 1, "B", "2025-01-13", "2025-01-14", 2)

        result = delay_service.shift_project_schedule(1, -2)

        assert result == {'project_id': 1, 'phases_shifted': 2, 'shift_days': -2}
        assert fake_db.phases[first.id].start_date == date(2025, 1, 4)
        assert fake_db.phases[second.id].end_date == date(2025, 1, 12)
        assert fake_db.activities[0]['type'] == "schedule_shift"
        assert 1 in fake_db.schedules

    def test_string_days_are_accepted(self, delay_service, fake_db):
        """Test that a numeric string shift is accepted."""
        add_phase(fake_db, 1, "A", "2025-01-06", "2025-01-10", 5)

        assert delay_service.shift_project_schedule(1, "3")['shift_days'] == 3

    @pytest.mark.parametrize("shift_days", [0, "x", None, 1.5])
    def test_invalid_shift_days(self, delay_service, fake_db, shift_days):
        """Test that a zero, fractional or non-numeric shift is rejected."""
        add_phase(fake_db, 1, "A", "2025-01-06", "2025-01-10", 5)

        with pytest.raises(ValueError):
            delay_service.shift_project_schedule(1, shift_days)

    def test_project_without_phases(self, delay_service):
        """Test that shifting a project with no phases raises ValueError."""
        with pytest.raises(ValueError, match="no phases to shift"):
            delay_service.shift_project_schedule(1, 2)


class TestWeatherDays:

    def test_lists_weather_days_in_range(self, delay_service):
        """Test that only weather exceptions inside the range are listed."""
        delay_service.apply_global_delay("2025-01-05", "Heavy rain", 3)
        delay_service.apply_global_delay("2025-01-07", "Late steel", 2, exception_type="supply")
        delay_service.apply_global_delay("2025-02-10", "Snow", 1)

        weather = delay_service.list_weather_days("2025-01-01", "2025-01-31")

        assert weather == {"2025-01-05": {'reason': "Heavy rain", 'delay_days': 3}}

    def test_latest_exception_wins_for_a_date(self, delay_service):
        """Test that the latest exception wins when two share a date."""
        delay_service.apply_global_delay("2025-01-05", "Rain", 1)
        delay_service.apply_global_delay("2025-01-05", "Flooding", 4)

        assert delay_service.list_weather_days() == {"2025-01-05": {'reason': "Flooding", 'delay_days': 4}}
