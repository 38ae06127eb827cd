import logging
import re
from pathlib import Path
from typing import List, TYPE_CHECKING

from clockify_auto.schemas.report import MonthlyReport, ReportEntry
from clockify_auto.utils.dates import parse_iso_datetime

if TYPE_CHECKING:
    from clockify_auto.connectors.clockify_connector import RemoteTimeEntry

log = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?$")


def duration_to_seconds(duration: str) -> float:
    """Parse Clockify's ISO-8601 duration (PT8H30M). Unknown formats count as zero."""
    match = _DURATION_RE.match(duration or "")
    if not match:
        return 0.0
    hours, minutes, seconds = match.groups()
    return int(hours or 0) * 3600 + int(minutes or 0) * 60 + float(seconds or 0)


def entry_seconds(entry: 'RemoteTimeEntry') -> float:
    interval = entry.time_interval
    if interval.duration:
        return duration_to_seconds(interval.duration)
    if interval.end:
        return (parse_iso_datetime(interval.end) - parse_iso_datetime(interval.start)).total_seconds()
    return 0.0


class MonthlyReportService:
    """Writes a month's Clockify entries as a JSON report."""

    def __init__(self, report_dir: str):
        self.report_dir = Path(report_dir).expanduser()

    def calculate_total_hours(self, entries: List['RemoteTimeEntry']) -> float:
        return round(sum(entry_seconds(e) for e in entries) / 3600, 2)

    def build_report(self, year: int, month: int, entries: List['RemoteTimeEntry']) -> MonthlyReport:
        rows = sorted(
            (
                ReportEntry(
                    date=e.entry_date,
                    description=e.description or "",
                    start=e.time_interval.start,
                    end=e.time_interval.end,
                    duration=e.time_interval.duration,
                )
                for e in entries
            ),
            key=lambda r: (r.date, r.start),
        )
        return MonthlyReport(month=month, year=year, entries=rows, total_hours=self.calculate_total_hours(entries))

    def generate(self, year: int, month: int, entries: List['RemoteTimeEntry']) -> Path:
        report = self.build_report(year, month, entries)
        self.report_dir.mkdir(parents=True, exist_ok=True)
        path = self.report_dir / f"clockify-report-{year:04d}-{month:02d}.json"
        path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        log.info(f"Monthly report written to {path} ({len(report.entries)} entries, {report.total_hours}h)")
        return path
