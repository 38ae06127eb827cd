import pytest
from datetime import date

from clockify_auto.services.business_day import BusinessDayService
from clockify_auto.utils.dates import date_range, is_weekday


class FakeCalendar(dict):
    """Maps dates to holiday names like holidays.HolidayBase."""


class BrokenCalendar:
    def get(self, day):
        raise RuntimeError("calendar data unavailable")


@pytest.fixture
def service():
    return BusinessDayService(calendar=FakeCalendar({date(2025, 1, 1): "Confraternização Universal"}))


def test_weekend_reason_takes_precedence(service):
    assert service.skip_reason("2025-01-04") == "Weekend"
    # A holiday that falls on a weekend is still reported as weekend
    weekend_holiday = BusinessDayService(calendar=FakeCalendar({date(2025, 1, 5): "Some Holiday"}))
    assert weekend_holiday.skip_reason("2025-01-05") == "Weekend"


def test_holiday_reason_includes_name(service):
    assert service.skip_reason("2025-01-01") == "Holiday: Confraternização Universal"
    assert service.is_holiday("2025-01-01")
    assert not service.is_business_day("2025-01-01")


def test_regular_weekday_is_not_skipped(service):
    assert service.skip_reason("2025-01-02") is None
    assert not service.should_skip_date("2025-01-02")
    assert service.is_business_day("2025-01-02")


def test_business_day_matches_weekday_and_not_holiday(service):
    for day in date_range("2024-12-20", "2025-01-20"):
        assert service.is_business_day(day) == (is_weekday(day) and not service.is_holiday(day))


def test_calendar_error_means_not_a_holiday():
    service = BusinessDayService(calendar=BrokenCalendar())
    assert service.is_holiday("2025-01-01") is False
    assert service.holiday_name("2025-01-01") is None
    assert service.is_business_day("2025-01-01")
    assert service.skip_reason("2025-01-01") is None


def test_last_business_day_of_month_skips_weekend_and_holidays():
    # 2025-05-31 is a Saturday; Friday the 30th is made a holiday here
    service = BusinessDayService(calendar=FakeCalendar({date(2025, 5, 30): "Company Day"}))
    assert service.last_business_day_of_month("2025-05-10") == date(2025, 5, 29)
    assert service.is_last_business_day_of_month("2025-05-29")
    assert not service.is_last_business_day_of_month("2025-05-30")
    assert not service.is_last_business_day_of_month("2025-05-28")


def test_brazilian_calendar_from_holidays_library():
    service = BusinessDayService(country="BR")
    # Tiradentes, 21 April 2025 (Monday)
    assert service.is_holiday("2025-04-21")
    assert service.skip_reason("2025-04-21").startswith("Holiday: ")
    assert service.is_business_day("2025-04-22")
