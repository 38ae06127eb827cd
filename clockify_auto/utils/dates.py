"""Calendar helpers. All dates are local calendar days."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Tuple, Union

DateLike = Union[str, date]


def to_date(value: DateLike) -> date:
    """Accept a YYYY-MM-DD string or a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def is_weekday(value: DateLike) -> bool:
    # Monday = 0, Friday = 4
    return to_date(value).weekday() < 5


def date_range(start: DateLike, end: DateLike) -> List[date]:
    """Inclusive list of days from start to end; empty when end < start."""
    current, last = to_date(start), to_date(end)
    days = []
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def first_day_of_month(value: DateLike) -> date:
    return to_date(value).replace(day=1)


def last_day_of_month(value: DateLike) -> date:
    d = to_date(value)
    next_month = (d.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def first_day_of_previous_month(value: DateLike) -> date:
    return first_day_of_month(first_day_of_month(value) - timedelta(days=1))


def gap_fill_window(today: DateLike) -> Tuple[date, date]:
    """[first day of previous month, yesterday] relative to today."""
    d = to_date(today)
    return first_day_of_previous_month(d), d - timedelta(days=1)


def parse_hhmm(value: str) -> time:
    hour, minute = value.split(":")[:2]
    return time(int(hour), int(minute))


def local_datetime(day: DateLike, wall_clock: time) -> datetime:
    """Attach the process's local timezone to a wall-clock time on a day."""
    return datetime.combine(to_date(day), wall_clock).astimezone()


def local_day_bounds(day: DateLike) -> Tuple[datetime, datetime]:
    """Start and end instants of a local calendar day."""
    d = to_date(day)
    start = datetime.combine(d, time.min).astimezone()
    end = datetime.combine(d, time(23, 59, 59, 999000)).astimezone()
    return start, end


def to_utc_iso(value: datetime) -> str:
    """Format an aware datetime as UTC ISO-8601 with a Z suffix."""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_iso_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def batched(items: Iterable, size: int) -> List[list]:
    """Split items into consecutive lists of at most size elements."""
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]
