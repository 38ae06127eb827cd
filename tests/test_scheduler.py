import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from clockify_auto import scheduler as scheduler_module
from clockify_auto.schemas.sync import DailyRunResult, GapFillSummary


@pytest.fixture(autouse=True)
def clean_jobs():
    yield
    if scheduler_module.scheduler.get_job(scheduler_module.JOB_ID):
        scheduler_module.scheduler.remove_job(scheduler_module.JOB_ID)


def test_reschedule_registers_single_cron_job():
    scheduler_module.reschedule_daily_job("0 18 * * 1-5")
    scheduler_module.reschedule_daily_job("30 17 * * 1-5")

    jobs = scheduler_module.scheduler.get_jobs()
    assert [job.id for job in jobs] == [scheduler_module.JOB_ID]
    assert "minute='30'" in str(jobs[0].trigger)


def test_invalid_cron_rejected():
    with pytest.raises(ValueError):
        scheduler_module.reschedule_daily_job("not a cron")


@pytest.mark.asyncio
async def test_overlapping_trigger_is_skipped():
    with patch.object(scheduler_module, "_run_active", True), \
            patch.object(scheduler_module, "get_settings") as mock_settings:
        await scheduler_module.scheduled_daily_job()
    mock_settings.assert_not_called()


@pytest.mark.asyncio
async def test_scheduled_job_runs_daily_flow():
    service = MagicMock()
    service.run_daily = AsyncMock(return_value=DailyRunResult(run_id=3, gap_fill=GapFillSummary()))
    service.close = AsyncMock()

    with patch.object(scheduler_module, "get_settings") as mock_settings, \
            patch.object(scheduler_module, "init_db") as mock_init_db, \
            patch.object(scheduler_module.SyncService, "from_settings", return_value=service):
        await scheduler_module.scheduled_daily_job()

    mock_init_db.assert_called_once_with(mock_settings.return_value.database_url)
    service.run_daily.assert_awaited_once_with(trigger_type="scheduled")
    service.close.assert_awaited_once()
    assert scheduler_module._run_active is False


@pytest.mark.asyncio
async def test_scheduled_job_failure_is_logged_not_raised():
    service = MagicMock()
    service.run_daily = AsyncMock(side_effect=RuntimeError("boom"))
    service.close = AsyncMock()

    with patch.object(scheduler_module, "get_settings"), \
            patch.object(scheduler_module, "init_db"), \
            patch.object(scheduler_module.SyncService, "from_settings", return_value=service):
        await scheduler_module.scheduled_daily_job()

    service.close.assert_awaited_once()
    assert scheduler_module._run_active is False
