import asyncio
import logging
from datetime import date
from typing import List, Optional, Tuple, TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from clockify_auto.connectors.base import AuthenticationError
from clockify_auto.constants.failure_reasons import FailureReason, explain_failure
from clockify_auto.schemas.sync import DateFailure, GapFillSummary
from clockify_auto.schemas.time_entry import TimeEntryRecordCreate, TimeEntryRecordRead
from clockify_auto.utils.dates import DateLike, batched, date_range, gap_fill_window, is_weekday, to_date

if TYPE_CHECKING:
    from clockify_auto.connectors.clockify_connector import ClockifyConnector, CreatedTimeEntry
    from clockify_auto.services.business_day import BusinessDayService
    from clockify_auto.services.description_resolver import DescriptionResolver
    from clockify_auto.services.ledger import LedgerService

log = logging.getLogger(__name__)

# Errors that stop the whole run once the current batch has settled
FATAL_ERRORS = (AuthenticationError, SQLAlchemyError)


def record_from_created(created: 'CreatedTimeEntry') -> TimeEntryRecordCreate:
    """Local ledger row for an entry that Clockify just accepted."""
    draft = created.draft
    return TimeEntryRecordCreate(
        clockify_id=created.entry.id,
        date=draft.start.date(),
        description=draft.description,
        start_time=draft.start.strftime("%H:%M:%S"),
        end_time=draft.end.strftime("%H:%M:%S"),
        duration_minutes=draft.duration_minutes,
        project_id=created.project_id,
        workspace_id=created.workspace_id,
    )


def _failure_for(day: date, error: BaseException, code: Optional[FailureReason] = None) -> DateFailure:
    reason = code or getattr(error, "reason", FailureReason.OTHER)
    context = {"entry_date": day.isoformat(), "error_detail": str(error)}
    service = getattr(error, "service", "")
    if service:
        context["service"] = service
    return DateFailure(date=day, reason=reason.value, message=explain_failure(reason, context))


def _raise_fatal(results: list) -> None:
    for result in results:
        if isinstance(result, FATAL_ERRORS):
            raise result


class ReconciliationService:
    """
    Backfills missing Clockify entries for business days between the first day
    of the previous month and yesterday.

    Existence checks and creates run concurrently inside fixed-size batches,
    with a pause between batches to stay under the API rate limit. A failure
    for one date never affects its siblings; authentication and local storage
    errors end the run after the batch in flight has settled.
    """

    def __init__(
        self,
        clockify_connector: 'ClockifyConnector',
        ledger: 'LedgerService',
        business_days: 'BusinessDayService',
        resolver: 'DescriptionResolver',
        check_batch_size: int = 10,
        check_batch_delay: float = 1.0,
        create_batch_size: int = 5,
        create_batch_delay: float = 0.5,
    ):
        self.clockify = clockify_connector
        self.ledger = ledger
        self.business_days = business_days
        self.resolver = resolver
        self.check_batch_size = check_batch_size
        self.check_batch_delay = check_batch_delay
        self.create_batch_size = create_batch_size
        self.create_batch_delay = create_batch_delay

    @classmethod
    def from_settings(cls, settings, clockify_connector, ledger, business_days, resolver) -> "ReconciliationService":
        return cls(
            clockify_connector,
            ledger,
            business_days,
            resolver,
            check_batch_size=settings.check_batch_size,
            check_batch_delay=settings.check_batch_delay_seconds,
            create_batch_size=settings.create_batch_size,
            create_batch_delay=settings.create_batch_delay_seconds,
        )

    def compute_window(self, today: DateLike) -> Tuple[date, date]:
        return gap_fill_window(today)

    def eligible_dates(self, start: DateLike, end: DateLike) -> List[date]:
        """Weekdays in [start, end] that are not holidays, ascending."""
        weekdays = [d for d in date_range(start, end) if is_weekday(d)]
        eligible = [d for d in weekdays if not self.business_days.should_skip_date(d)]
        log.info(f"{len(eligible)} of {len(weekdays)} weekdays from {to_date(start)} to {to_date(end)} are business days")
        return eligible

    async def find_missing_dates(self, dates: List[date], summary: GapFillSummary) -> List[date]:
        """Batched existence checks. Dates whose check errored are reported as unknown, never as missing."""
        batches = batched(dates, self.check_batch_size)
        missing: List[date] = []

        for index, batch in enumerate(batches):
            log.info(f"Checking batch {index + 1}/{len(batches)} ({len(batch)} dates)...")
            results = await asyncio.gather(
                *(self.clockify.has_entry_for_date(d) for d in batch),
                return_exceptions=True,
            )

            for day, result in zip(batch, results):
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    failure = _failure_for(day, result, FailureReason.UNKNOWN_EXISTENCE)
                    summary.unknown_dates.append(failure)
                    log.warning(failure.message)
                elif not result:
                    missing.append(day)
            _raise_fatal(results)

            if index < len(batches) - 1 and self.check_batch_delay:
                await asyncio.sleep(self.check_batch_delay)

        return missing

    async def create_entry_for_date(self, day: date, fallback_title: Optional[str]) -> TimeEntryRecordRead:
        description = self.resolver.resolve_description_for_date(day, fallback_title)
        created = await self.clockify.create_entry(description, day)
        record = self.ledger.record_time_entry(record_from_created(created))
        log.info(f"Added entry for {day}: {description}")
        return record

    async def create_missing_entries(self, missing: List[date], fallback_title: Optional[str], summary: GapFillSummary) -> None:
        batches = batched(missing, self.create_batch_size)

        for index, batch in enumerate(batches):
            log.info(f"Processing batch {index + 1}/{len(batches)} ({len(batch)} entries)...")
            results = await asyncio.gather(
                *(self.create_entry_for_date(d, fallback_title) for d in batch),
                return_exceptions=True,
            )

            successes = 0
            for day, result in zip(batch, results):
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    failure = _failure_for(day, result)
                    summary.failures.append(failure)
                    log.error(f"Failed to add entry for {day}: {result}")
                else:
                    successes += 1
                    summary.created_dates.append(day)
            log.info(f"Batch {index + 1} completed: {successes}/{len(batch)} successful")
            _raise_fatal(results)

            if index < len(batches) - 1 and self.create_batch_delay:
                await asyncio.sleep(self.create_batch_delay)

    async def fill_missing_entries(self, today: Optional[DateLike] = None) -> GapFillSummary:
        """Run the gap fill for the window ending yesterday and return its summary."""
        today = to_date(today) if today is not None else date.today()
        start, end = self.compute_window(today)
        summary = GapFillSummary(window_start=start, window_end=end)

        log.info(f"Checking for missing time entries in Clockify from {start} to {end}...")
        dates = self.eligible_dates(start, end)
        summary.checked = len(dates)

        missing = await self.find_missing_dates(dates, summary)
        summary.missing_dates = missing
        summary.gaps = len(missing)
        summary.unknown = len(summary.unknown_dates)
        log.info(f"Found {len(missing)} missing entries out of {len(dates)} checked dates")

        if not missing:
            log.info("All checked dates have time entries in Clockify")
            return summary

        # One Jira lookup per run, shared by every missing date
        fallback_title = await self.resolver.fetch_current_assigned_task_title()

        try:
            await self.create_missing_entries(missing, fallback_title, summary)
        finally:
            summary.created = len(summary.created_dates)
            summary.failed = len(summary.failures)

        log.info(
            f"Gap fill summary: checked={summary.checked} missing={summary.gaps} "
            f"created={summary.created} failed={summary.failed} unknown={summary.unknown}"
        )
        return summary
