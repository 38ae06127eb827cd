import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional, TYPE_CHECKING

from clockify_auto.connectors.base import AuthenticationError, ConnectorError
from clockify_auto.connectors.clockify_connector import ClockifyConnector
from clockify_auto.connectors.jira_connector import JiraConnector
from clockify_auto.constants.failure_reasons import explain_failure
from clockify_auto.schemas.sync import DailyRunResult, TodayResult
from clockify_auto.services.business_day import BusinessDayService
from clockify_auto.services.csv_import import import_legacy_tasks_csv
from clockify_auto.services.description_resolver import DescriptionResolver
from clockify_auto.services.reconciler import ReconciliationService, record_from_created
from clockify_auto.services.report import MonthlyReportService
from clockify_auto.utils.dates import DateLike, first_day_of_month, last_day_of_month, to_date

if TYPE_CHECKING:
    from clockify_auto.services.ledger import LedgerService

log = logging.getLogger(__name__)


class SyncService:
    """
    Orchestrates the daily run: legacy import, gap fill, today's entry,
    the end-of-month report, and run history.
    """

    def __init__(
        self,
        clockify_connector: ClockifyConnector,
        ledger: 'LedgerService',
        business_days: BusinessDayService,
        resolver: DescriptionResolver,
        reconciliation_service: ReconciliationService,
        report_service: Optional[MonthlyReportService] = None,
        legacy_tasks_csv: Optional[str] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.clockify_connector = clockify_connector
        self.ledger = ledger
        self.business_days = business_days
        self.resolver = resolver
        self.reconciliation_service = reconciliation_service
        self.report_service = report_service
        self.legacy_tasks_csv = legacy_tasks_csv
        self._today = today or date.today

    @classmethod
    def from_settings(cls, settings, ledger: 'LedgerService', transport=None) -> "SyncService":
        """Wire every collaborator from configuration. Raises ConfigurationError when Clockify is not set up."""
        settings.require_clockify()
        clockify = ClockifyConnector.from_settings(settings, transport=transport)
        jira = JiraConnector.from_settings(settings, transport=transport)
        business_days = BusinessDayService.from_settings(settings)
        resolver = DescriptionResolver(ledger, jira)
        reconciler = ReconciliationService.from_settings(settings, clockify, ledger, business_days, resolver)
        report_service = MonthlyReportService(settings.report_dir) if settings.report_dir else None
        return cls(
            clockify,
            ledger,
            business_days,
            resolver,
            reconciler,
            report_service=report_service,
            legacy_tasks_csv=settings.legacy_tasks_csv,
        )

    async def process_today(self, today: Optional[DateLike] = None) -> TodayResult:
        """Create today's entry unless today is not worked or already has one."""
        day = to_date(today) if today is not None else self._today()

        reason = self.business_days.skip_reason(day)
        if reason:
            log.info(f"Skipping today ({day}): {reason}")
            return TodayResult(date=day, status="skipped", reason=reason)

        try:
            if await self.clockify_connector.has_entry_for_date(day):
                log.info(f"Time entry already exists in Clockify for {day}")
                return TodayResult(date=day, status="exists")

            description = await self.resolver.resolve_description_for_today(day)
            created = await self.clockify_connector.create_entry(description, day)
        except AuthenticationError:
            raise
        except ConnectorError as e:
            message = explain_failure(e.reason, {
                "service": e.service or "Clockify",
                "entry_date": day.isoformat(),
                "error_detail": str(e),
            })
            log.error(message)
            return TodayResult(date=day, status="failed", reason=message)

        self.ledger.record_time_entry(record_from_created(created))
        log.info(f"Added time entry for {day}: {description} (entry ID: {created.entry.id})")
        return TodayResult(date=day, status="created", description=description, entry_id=created.entry.id)

    async def generate_monthly_report(self, today: Optional[DateLike] = None) -> Optional[Path]:
        """Write the month's report; problems are logged and never abort the run."""
        if self.report_service is None:
            log.info("Report directory not configured, skipping monthly report generation")
            return None

        day = to_date(today) if today is not None else self._today()
        log.info("Last business day of month, generating monthly report...")
        try:
            entries = await self.clockify_connector.list_entries_for_date_range(
                first_day_of_month(day), last_day_of_month(day)
            )
            return self.report_service.generate(day.year, day.month, entries)
        except Exception as e:
            log.error(f"Error generating monthly report: {e}")
            return None

    async def run_daily(self, trigger_type: str = "manual", today: Optional[DateLike] = None) -> DailyRunResult:
        day = to_date(today) if today is not None else self._today()
        run_id = self.ledger.start_run(trigger_type)
        log.info(f"Starting Clockify auto-fill run {run_id} ({trigger_type}) for {day}")

        try:
            if self.legacy_tasks_csv:
                import_legacy_tasks_csv(self.ledger, self.legacy_tasks_csv)

            gap_fill = await self.reconciliation_service.fill_missing_entries(day)
            today_result = await self.process_today(day)

            report_path = None
            if self.business_days.is_last_business_day_of_month(day):
                path = await self.generate_monthly_report(day)
                report_path = str(path) if path else None
        except Exception as e:
            log.error(f"Run {run_id} failed: {e}")
            try:
                self.ledger.fail_run(run_id, str(e))
            except Exception as record_error:
                log.error(f"Could not record failure of run {run_id}: {record_error}")
            raise

        self.ledger.finish_run(run_id, gap_fill)
        log.info(f"Run {run_id} completed")
        return DailyRunResult(run_id=run_id, gap_fill=gap_fill, today=today_result, report_path=report_path)

    async def close(self) -> None:
        await self.clockify_connector.close()
        jira = self.resolver.jira_connector
        if jira is not None:
            await jira.close()
