"""APScheduler integration for the recurring daily run."""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from clockify_auto.config import get_settings
from clockify_auto.database import init_db
from clockify_auto.services.ledger import LedgerService
from clockify_auto.services.sync_service import SyncService

log = logging.getLogger(__name__)

JOB_ID = "daily_time_entry_job"

# Global scheduler instance
scheduler = AsyncIOScheduler()

# Guard against overlapping runs
_run_active = False


async def scheduled_daily_job():
    """Execute the daily run; a trigger that fires while a run is active is skipped."""
    global _run_active

    if _run_active:
        log.warning("Scheduled run skipped: previous run still active")
        return

    _run_active = True
    service = None
    try:
        log.info("Starting scheduled daily run")
        settings = get_settings()
        init_db(settings.database_url)
        service = SyncService.from_settings(settings, LedgerService())
        result = await service.run_daily(trigger_type="scheduled")
        summary = result.gap_fill
        log.info(
            f"Scheduled run #{result.run_id} completed: created={summary.created} "
            f"failed={summary.failed} unknown={summary.unknown}"
        )
    except Exception as e:
        log.error(f"Scheduled run failed: {e}", exc_info=True)
    finally:
        _run_active = False
        if service is not None:
            await service.close()


def reschedule_daily_job(cron: str):
    """Replace the daily job with one on the given crontab expression."""
    if scheduler.get_job(JOB_ID):
        scheduler.remove_job(JOB_ID)
        log.info(f"Removed existing job: {JOB_ID}")

    try:
        trigger = CronTrigger.from_crontab(cron)
    except ValueError as e:
        log.error(f"Failed to schedule job with cron '{cron}': {e}")
        raise
    scheduler.add_job(
        scheduled_daily_job,
        trigger=trigger,
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    log.info(f"Scheduled daily job: cron='{cron}'")


def start_scheduler(cron: str):
    reschedule_daily_job(cron)
    if not scheduler.running:
        scheduler.start()
        log.info("APScheduler started successfully")


def shutdown_scheduler():
    """Shutdown the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        log.info("APScheduler shut down successfully")


async def run_forever(cron: str):
    """Foreground loop for `clockify-auto schedule`; stops on cancellation."""
    start_scheduler(cron)
    job = scheduler.get_job(JOB_ID)
    if job is not None and job.next_run_time:
        log.info(f"Next run at {job.next_run_time}")
    try:
        await asyncio.Event().wait()
    finally:
        shutdown_scheduler()
