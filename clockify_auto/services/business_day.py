import logging
from datetime import date, timedelta
from typing import Any, Optional

import holidays

from clockify_auto.utils.dates import DateLike, is_weekday, last_day_of_month, to_date

log = logging.getLogger(__name__)


class BusinessDayService:
    """
    Classifies calendar days as working days: Monday to Friday and not a public holiday.
    Holiday lookups never raise; a calendar failure means "not a holiday".
    """

    def __init__(self, country: str = "BR", subdivision: Optional[str] = None, calendar: Any = None):
        self.country = country
        self.subdivision = subdivision
        self._calendar = calendar

    @classmethod
    def from_settings(cls, settings) -> "BusinessDayService":
        return cls(country=settings.holiday_country, subdivision=settings.holiday_subdivision)

    def _get_calendar(self):
        if self._calendar is None:
            self._calendar = holidays.country_holidays(self.country, subdiv=self.subdivision)
            log.debug(f"Loaded holiday calendar for {self.country}{'/' + self.subdivision if self.subdivision else ''}")
        return self._calendar

    def holiday_name(self, day: DateLike) -> Optional[str]:
        try:
            return self._get_calendar().get(to_date(day))
        except Exception as e:
            log.warning(f"Holiday lookup failed for {day}, treating it as a working day: {e}")
            return None

    def is_holiday(self, day: DateLike) -> bool:
        return self.holiday_name(day) is not None

    def is_business_day(self, day: DateLike) -> bool:
        return is_weekday(day) and not self.is_holiday(day)

    def skip_reason(self, day: DateLike) -> Optional[str]:
        """'Weekend', 'Holiday: <name>', or None when the day is worked."""
        if not is_weekday(day):
            return "Weekend"
        name = self.holiday_name(day)
        if name is not None:
            return f"Holiday: {name}"
        return None

    def should_skip_date(self, day: DateLike) -> bool:
        return self.skip_reason(day) is not None

    def last_business_day_of_month(self, day: DateLike) -> date:
        current = last_day_of_month(day)
        first = to_date(day).replace(day=1)
        while current > first and not self.is_business_day(current):
            current -= timedelta(days=1)
        return current

    def is_last_business_day_of_month(self, day: DateLike) -> bool:
        d = to_date(day)
        return self.is_business_day(d) and self.last_business_day_of_month(d) == d
