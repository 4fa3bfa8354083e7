"""
Tests for the default holiday rules and best-effort holiday seeding.
"""
from datetime import date

import pytest

from app.scheduling.holidays import (
    default_holidays,
    labor_day,
    memorial_day,
    missing_default_holidays,
    thanksgiving,
)


# ==============================================================================
# HOLIDAY RULE TESTS
# ==============================================================================

class TestFloatingHolidays:

    @pytest.mark.parametrize("year,expected", [
        (2024, date(2024, 5, 27)),
        (2025, date(2025, 5, 26)),
        (2026, date(2026, 5, 25)),
    ])
    def test_memorial_day(self, year, expected):
        """Test that Memorial Day is the last Monday in May."""
        assert memorial_day(year) == expected
        assert expected.weekday() == 0

    @pytest.mark.parametrize("year,expected", [
        (2024, date(2024, 9, 2)),
        (2025, date(2025, 9, 1)),
        (2026, date(2026, 9, 7)),
    ])
    def test_labor_day(self, year, expected):
        """Test that Labor Day is the first Monday in September."""
        assert labor_day(year) == expected

    @pytest.mark.parametrize("year,expected", [
        (2024, date(2024, 11, 28)),
        (2025, date(2025, 11, 27)),
        (2026, date(2026, 11, 26)),
    ])
    def test_thanksgiving(self, year, expected):
        """Test that Thanksgiving is the fourth Thursday in November."""
        assert thanksgiving(year) == expected
        assert expected.weekday() == 3


class TestDefaultHolidays:

    def test_2025_has_nine_holidays(self):
        """Test that the 2025 default calendar holds the nine company holidays."""
        holidays = dict(default_holidays(2025))

        assert len(holidays) == 9
        assert holidays["2025-01-01"] == "New Year's Day"
        assert holidays["2025-05-26"] == "Memorial Day"
        assert holidays["2025-07-04"] == "Independence Day"
        assert holidays["2025-09-01"] == "Labor Day"
        assert holidays["2025-11-27"] == "Thanksgiving"
        assert holidays["2025-11-28"] == "Black Friday"
        assert holidays["2025-12-24"] == "Christmas Eve"
        assert holidays["2025-12-25"] == "Christmas Day"
        assert holidays["2025-12-26"] == "Day after Christmas"

    def test_missing_skips_existing_dates(self):
        """Test that already stored dates are left out of the missing holidays."""
        to_add = missing_default_holidays([2025], {"2025-01-01", "2025-07-04"})

        dates = [iso for iso, _ in to_add]
        assert len(dates) == 7
        assert "2025-01-01" not in dates
        assert "2025-07-04" not in dates

    def test_missing_handles_duplicate_years(self):
        """Test that a repeated year does not produce duplicate holidays."""
        assert len(missing_default_holidays([2025, 2025], set())) == 9


# ==============================================================================
# HOLIDAY SERVICE TESTS
# ==============================================================================

class TestHolidayService:

    def test_seed_inserts_all_defaults(self, holiday_service, fake_db):
        """Test that seeding two empty years inserts every default holiday."""
        inserted = holiday_service.seed_default_holidays([2025, 2026])

        assert inserted == 18
        assert len(fake_db.holidays) == 18

    def test_seed_is_idempotent(self, holiday_service, fake_db):
        """Test that seeding the same year twice inserts nothing the second time."""
        holiday_service.seed_default_holidays([2025])
        second = holiday_service.seed_default_holidays([2025])

        assert second == 0
        assert len(fake_db.holidays) == 9

    def test_seed_keeps_existing_rows(self, holiday_service, fake_db):
        """Test that seeding leaves an existing row on a default date untouched."""
        fake_db.holidays["2025-12-24"] = {'name': "Company Party", 'is_working_day': True}

        inserted = holiday_service.seed_default_holidays([2025])

        assert inserted == 8
        assert fake_db.holidays["2025-12-24"]['name'] == "Company Party"

    def test_read_failure_is_swallowed(self, holiday_service, fake_db, uow):
        """Test that a failed holiday read is rolled back and a later seed still works."""
        fake_db.fail_once.add('list_holiday_dates')

        assert holiday_service.seed_default_holidays([2025]) == 0
        assert fake_db.holidays == {}
        assert uow.rollbacks == 1
        assert holiday_service.seed_default_holidays([2025]) == 9

    def test_insert_failure_is_swallowed(self, holiday_service, fake_db, uow):
        """Test that a failed holiday insert is rolled back and reported as zero inserted."""
        fake_db.fail_on.add('add_holidays')

        assert holiday_service.seed_default_holidays([2025]) == 0
        assert fake_db.holidays == {}
        assert uow.rollbacks == 1

    def test_load_holiday_set_excludes_working_days(self, holiday_service, fake_db):
        """Test that working-day overrides are not treated as non-work days."""
        fake_db.holidays["2025-12-24"] = {'name': "Christmas Eve", 'is_working_day': True}
        fake_db.holidays["2025-12-25"] = {'name': "Christmas Day", 'is_working_day': False}

        assert holiday_service.load_holiday_set() == {"2025-12-25"}

    def test_list_holidays_filters_by_year(self, holiday_service):
        """Test that listing holidays by year returns only that year."""
        holiday_service.seed_default_holidays([2025, 2026])

        holidays = holiday_service.list_holidays(2026)

        assert len(holidays) == 9
        assert all(h['holiday_date'].startswith("2026-") for h in holidays)
