import json
import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock

from clockify_auto.connectors.base import AuthenticationError, TransientError
from clockify_auto.connectors.clockify_connector import CreatedTimeEntry, RemoteTimeEntry, TimeEntryDraft
from clockify_auto.schemas.sync import GapFillSummary
from clockify_auto.services.business_day import BusinessDayService
from clockify_auto.services.description_resolver import DescriptionResolver
from clockify_auto.services.report import MonthlyReportService
from clockify_auto.services.sync_service import SyncService
from clockify_auto.utils.dates import local_datetime, parse_hhmm, to_utc_iso


def _created(day, description="General work", entry_id="today-1"):
    start = local_datetime(day, parse_hhmm("09:00"))
    end = local_datetime(day, parse_hhmm("17:00"))
    return CreatedTimeEntry(
        entry=RemoteTimeEntry(
            id=entry_id,
            description=description,
            time_interval={"start": to_utc_iso(start), "end": to_utc_iso(end), "duration": "PT8H"},
        ),
        draft=TimeEntryDraft(description=description, start=start, end=end),
        project_id="proj",
        workspace_id="ws",
    )


@pytest.fixture
def clockify():
    client = MagicMock()
    client.has_entry_for_date = AsyncMock(return_value=False)
    client.create_entry = AsyncMock(side_effect=lambda description, day, *a, **kw: _created(day, description))
    client.list_entries_for_date_range = AsyncMock(return_value=[])
    client.close = AsyncMock()
    return client


@pytest.fixture
def reconciler():
    service = MagicMock()
    service.fill_missing_entries = AsyncMock(return_value=GapFillSummary(checked=12, gaps=1, created=1))
    return service


def make_sync_service(ledger, clockify, reconciler, report_dir=None, legacy_csv=None, holidays=None):
    return SyncService(
        clockify,
        ledger,
        BusinessDayService(calendar=dict(holidays or {})),
        DescriptionResolver(ledger),
        reconciler,
        report_service=MonthlyReportService(str(report_dir)) if report_dir else None,
        legacy_tasks_csv=legacy_csv,
    )


@pytest.mark.asyncio
async def test_run_daily_creates_todays_entry_and_records_run(ledger, clockify, reconciler):
    ledger.upsert_task_assignment("2025-01-01", "proj", "Importer work")
    service = make_sync_service(ledger, clockify, reconciler)

    result = await service.run_daily(today=date(2025, 1, 20))

    reconciler.fill_missing_entries.assert_awaited_once_with(date(2025, 1, 20))
    assert result.today.status == "created"
    assert result.today.description == "Importer work"
    assert result.today.entry_id == "today-1"
    assert ledger.time_entries_for_date("2025-01-20")[0].clockify_id == "today-1"
    assert result.report_path is None

    runs = ledger.recent_runs()
    assert runs[0].id == result.run_id
    assert runs[0].status == "completed"
    assert runs[0].dates_checked == 12
    assert runs[0].entries_created == 1


@pytest.mark.asyncio
async def test_weekend_skips_today_but_still_fills_gaps(ledger, clockify, reconciler):
    service = make_sync_service(ledger, clockify, reconciler)

    result = await service.run_daily(today=date(2025, 1, 18))

    reconciler.fill_missing_entries.assert_awaited_once()
    assert result.today.status == "skipped"
    assert result.today.reason == "Weekend"
    clockify.has_entry_for_date.assert_not_awaited()


@pytest.mark.asyncio
async def test_holiday_skip_reason(ledger, clockify, reconciler):
    service = make_sync_service(ledger, clockify, reconciler, holidays={date(2025, 4, 21): "Tiradentes"})

    result = await service.process_today(date(2025, 4, 21))

    assert result.status == "skipped"
    assert result.reason == "Holiday: Tiradentes"


@pytest.mark.asyncio
async def test_today_with_existing_entry_is_left_alone(ledger, clockify, reconciler):
    clockify.has_entry_for_date = AsyncMock(return_value=True)
    service = make_sync_service(ledger, clockify, reconciler)

    result = await service.process_today(date(2025, 1, 20))

    assert result.status == "exists"
    clockify.create_entry.assert_not_awaited()
    assert not ledger.has_local_entry_for_date("2025-01-20")


@pytest.mark.asyncio
async def test_today_failure_does_not_fail_the_run(ledger, clockify, reconciler):
    clockify.create_entry = AsyncMock(side_effect=TransientError("Clockify HTTP 502 error", service="Clockify", status_code=502))
    service = make_sync_service(ledger, clockify, reconciler)

    result = await service.run_daily(today=date(2025, 1, 20))

    assert result.today.status == "failed"
    assert "502" in result.today.reason
    assert ledger.recent_runs()[0].status == "completed"


@pytest.mark.asyncio
async def test_authentication_error_fails_run(ledger, clockify, reconciler):
    reconciler.fill_missing_entries = AsyncMock(side_effect=AuthenticationError("Clockify authentication failed", service="Clockify"))
    service = make_sync_service(ledger, clockify, reconciler)

    with pytest.raises(AuthenticationError):
        await service.run_daily(today=date(2025, 1, 20))

    run = ledger.recent_runs()[0]
    assert run.status == "failed"
    assert "authentication" in run.error_message


@pytest.mark.asyncio
async def test_monthly_report_on_last_business_day(ledger, clockify, reconciler, tmp_path):
    clockify.list_entries_for_date_range = AsyncMock(return_value=[
        RemoteTimeEntry(
            id="e1",
            description="Work",
            time_interval={"start": "2025-01-30T12:00:00Z", "end": "2025-01-30T20:00:00Z", "duration": "PT8H"},
        ),
        RemoteTimeEntry(
            id="e2",
            description="More work",
            time_interval={"start": "2025-01-29T12:00:00Z", "end": "2025-01-29T16:30:00Z", "duration": "PT4H30M"},
        ),
    ])
    service = make_sync_service(ledger, clockify, reconciler, report_dir=tmp_path / "reports")

    result = await service.run_daily(today=date(2025, 1, 31))

    clockify.list_entries_for_date_range.assert_awaited_once_with(date(2025, 1, 1), date(2025, 1, 31))
    assert result.report_path is not None
    data = json.loads((tmp_path / "reports" / "clockify-report-2025-01.json").read_text())
    assert data["month"] == 1
    assert data["year"] == 2025
    assert data["total_hours"] == 12.5
    assert len(data["entries"]) == 2


@pytest.mark.asyncio
async def test_no_report_before_month_end(ledger, clockify, reconciler, tmp_path):
    service = make_sync_service(ledger, clockify, reconciler, report_dir=tmp_path)

    result = await service.run_daily(today=date(2025, 1, 30))

    assert result.report_path is None
    clockify.list_entries_for_date_range.assert_not_awaited()


@pytest.mark.asyncio
async def test_report_failure_is_not_fatal(ledger, clockify, reconciler, tmp_path):
    clockify.list_entries_for_date_range = AsyncMock(side_effect=TransientError("down", service="Clockify"))
    service = make_sync_service(ledger, clockify, reconciler, report_dir=tmp_path)

    result = await service.run_daily(today=date(2025, 1, 31))

    assert result.report_path is None
    assert ledger.recent_runs()[0].status == "completed"


@pytest.mark.asyncio
async def test_legacy_csv_imported_before_gap_fill(ledger, clockify, reconciler, tmp_path):
    csv_path = tmp_path / "tasks.csv"
    csv_path.write_text("start_date;project;description\n2025-01-01;proj;From CSV\n", encoding="utf-8")
    service = make_sync_service(ledger, clockify, reconciler, legacy_csv=str(csv_path))

    result = await service.run_daily(today=date(2025, 1, 20))

    assert result.today.description == "From CSV"
    assert not csv_path.exists()
    assert (tmp_path / "tasks.csv.backup").exists()


@pytest.mark.asyncio
async def test_close_closes_connectors(ledger, clockify, reconciler):
    jira = MagicMock()
    jira.close = AsyncMock()
    service = SyncService(
        clockify, ledger, BusinessDayService(calendar={}), DescriptionResolver(ledger, jira), reconciler,
    )

    await service.close()

    clockify.close.assert_awaited_once()
    jira.close.assert_awaited_once()
