"""Command line interface."""

import asyncio
import logging
from datetime import date
from typing import Annotated, Optional

import typer
from sqlalchemy.exc import SQLAlchemyError

from clockify_auto import __version__
from clockify_auto.config import CONFIG_FILE, ConfigurationError, Settings, get_settings
from clockify_auto.connectors.base import AuthenticationError, ConnectorError
from clockify_auto.connectors.clockify_connector import ClockifyConnector
from clockify_auto.connectors.jira_connector import JiraConnector
from clockify_auto.database import init_db
from clockify_auto.logging_setup import configure_logging
from clockify_auto.schemas.sync import DailyRunResult
from clockify_auto.services.ledger import LedgerService
from clockify_auto.services.report import MonthlyReportService
from clockify_auto.services.sync_service import SyncService
from clockify_auto.utils.dates import first_day_of_month, last_day_of_month, to_date

log = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Automated Clockify time entries with gap backfilling.")
tasks_app = typer.Typer(no_args_is_help=True, help="Manage task assignments used as entry descriptions.")
entries_app = typer.Typer(no_args_is_help=True, help="Inspect and delete recorded time entries.")
config_app = typer.Typer(no_args_is_help=True, help="Inspect configuration.")
app.add_typer(tasks_app, name="tasks")
app.add_typer(entries_app, name="entries")
app.add_typer(config_app, name="config")


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ConfigurationError as e:
        _fail(str(e))


def _open_ledger(settings: Settings) -> LedgerService:
    try:
        init_db(settings.database_url)
    except SQLAlchemyError as e:
        _fail(f"Could not open local database: {e}")
    return LedgerService()


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return to_date(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date '{value}', expected YYYY-MM-DD")


def _mask(value: Optional[str]) -> str:
    if not value:
        return "(not set)"
    if len(value) <= 4:
        return "****"
    return value[:4] + "****"


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="TRACE, VERBOSE, DEBUG, INFO, WARNING")] = None,
):
    try:
        settings = get_settings()
        level, debug = log_level or settings.log_level, verbose or settings.debug
    except ConfigurationError:
        level, debug = log_level or "INFO", verbose
    configure_logging(level, debug=debug)


def _print_summary(result: DailyRunResult) -> None:
    summary = result.gap_fill
    typer.echo("")
    typer.echo("Missing entries summary:")
    if summary.window_start and summary.window_end:
        typer.echo(f"  Window:  {summary.window_start} to {summary.window_end}")
    typer.echo(f"  Checked: {summary.checked} dates")
    typer.echo(f"  Missing: {summary.gaps} entries")
    typer.echo(f"  Added:   {summary.created} new entries")
    typer.echo(f"  Failed:  {summary.failed}")
    if summary.unknown:
        typer.echo(f"  Unknown: {summary.unknown} (existence check failed, left untouched)")
    for failure in summary.failures + summary.unknown_dates:
        typer.echo(f"    {failure.date}: {failure.message}")

    today = result.today
    if today is not None:
        if today.status == "created":
            typer.echo(f"Today ({today.date}): added entry '{today.description}' (ID {today.entry_id})")
        elif today.status == "exists":
            typer.echo(f"Today ({today.date}): entry already exists")
        elif today.status == "skipped":
            typer.echo(f"Today ({today.date}): skipped, {today.reason}")
        else:
            typer.echo(f"Today ({today.date}): failed, {today.reason}")

    if result.report_path:
        typer.echo(f"Monthly report generated: {result.report_path}")


async def _run_daily(settings: Settings, ledger: LedgerService) -> DailyRunResult:
    service = SyncService.from_settings(settings, ledger)
    try:
        return await service.run_daily(trigger_type="manual")
    finally:
        await service.close()


@app.command()
def run():
    """Fill missing entries since the start of last month, then add today's entry."""
    settings = _load_settings()
    missing = settings.missing_clockify_settings()
    if missing:
        _fail("Clockify configuration is incomplete. Missing: " + ", ".join(missing))

    ledger = _open_ledger(settings)
    typer.echo("Starting Clockify auto-fill process...")
    try:
        result = asyncio.run(_run_daily(settings, ledger))
    except (AuthenticationError, ConfigurationError, SQLAlchemyError) as e:
        _fail(f"Run aborted: {e}")

    _print_summary(result)
    typer.echo("Process completed successfully!")


# --- tasks ---

@tasks_app.command("list")
def tasks_list():
    """List task assignments with their effective date ranges."""
    ledger = _open_ledger(_load_settings())
    assignments = ledger.all_task_assignments()
    if not assignments:
        typer.echo("No task assignments found.")
        return
    for a in assignments:
        typer.echo(f"{a.start_date} -> {a.end_date}  [{a.project}]  {a.description}")


@tasks_app.command("add", no_args_is_help=True)
def tasks_add(
    start_date: Annotated[str, typer.Argument(help="First day of the assignment, YYYY-MM-DD")],
    project: str,
    description: str,
):
    """Add a task assignment, replacing any with the same start date."""
    start = _parse_date(start_date)
    ledger = _open_ledger(_load_settings())
    assignment_id = ledger.upsert_task_assignment(start, project, description)
    typer.echo(f"Task assignment {assignment_id} saved from {start}: {description}")


@tasks_app.command("current")
def tasks_current():
    """Show the assignment covering today."""
    ledger = _open_ledger(_load_settings())
    current = ledger.current_assignment()
    if current is None:
        typer.echo("No task assignment covers today.")
        return
    typer.echo(f"{current.start_date} -> {current.end_date}  [{current.project}]  {current.description}")


@tasks_app.command("remove", no_args_is_help=True)
def tasks_remove(start_date: Annotated[str, typer.Argument(help="Start date of the assignment, YYYY-MM-DD")]):
    start = _parse_date(start_date)
    ledger = _open_ledger(_load_settings())
    if not ledger.remove_assignment(start):
        _fail(f"No task assignment starts on {start}")
    typer.echo(f"Removed task assignment starting {start}")


# --- entries ---

@entries_app.command("list")
def entries_list(
    on_date: Annotated[Optional[str], typer.Option("--date", help="Single day, YYYY-MM-DD")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Range start, YYYY-MM-DD")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Range end, YYYY-MM-DD")] = None,
):
    """List time entries recorded locally (defaults to the current month)."""
    ledger = _open_ledger(_load_settings())
    if on_date:
        entries = ledger.time_entries_for_date(_parse_date(on_date))
    else:
        today = date.today()
        range_start = _parse_date(start) or first_day_of_month(today)
        range_end = _parse_date(end) or last_day_of_month(today)
        entries = ledger.time_entries_in_range(range_start, range_end)

    if not entries:
        typer.echo("No time entries recorded.")
        return
    for e in entries:
        typer.echo(f"{e.date}  {e.start_time}-{e.end_time}  {e.duration_minutes}min  {e.clockify_id or '-'}  {e.description}")


async def _delete_remote(settings: Settings, remote_id: str) -> None:
    connector = ClockifyConnector.from_settings(settings)
    try:
        await connector.delete_entry(remote_id)
    finally:
        await connector.close()


@entries_app.command("delete", no_args_is_help=True)
def entries_delete(remote_id: Annotated[str, typer.Argument(help="Clockify time entry id")]):
    """Delete an entry in Clockify and from the local ledger."""
    settings = _load_settings()
    try:
        settings.require_clockify()
    except ConfigurationError as e:
        _fail(str(e))
    ledger = _open_ledger(settings)
    try:
        asyncio.run(_delete_remote(settings, remote_id))
    except ConnectorError as e:
        _fail(f"Could not delete entry {remote_id}: {e}")
    removed = ledger.delete_time_entry(remote_id)
    typer.echo(f"Deleted Clockify entry {remote_id}" + ("" if removed else " (no local record)"))


# --- report ---

async def _fetch_month(settings: Settings, start: date, end: date, detailed: bool):
    connector = ClockifyConnector.from_settings(settings)
    try:
        if detailed:
            return await connector.fetch_detailed_report(start, end)
        return await connector.list_entries_for_date_range(start, end)
    finally:
        await connector.close()


@app.command()
def report(
    month: Annotated[Optional[str], typer.Option("--month", help="YYYY-MM, defaults to the current month")] = None,
    detailed: Annotated[bool, typer.Option("--detailed", help="Use the workspace detailed report API")] = False,
):
    """Write the monthly JSON report to the configured report directory."""
    settings = _load_settings()
    try:
        settings.require_clockify()
    except ConfigurationError as e:
        _fail(str(e))
    if not settings.report_dir:
        _fail("Report directory not configured (report_dir).")

    first = _parse_date(f"{month}-01") if month else first_day_of_month(date.today())
    last = last_day_of_month(first)
    try:
        entries = asyncio.run(_fetch_month(settings, first, last, detailed))
    except ConnectorError as e:
        _fail(f"Could not fetch entries: {e}")

    path = MonthlyReportService(settings.report_dir).generate(first.year, first.month, entries)
    typer.echo(f"Monthly report generated: {path}")


# --- config ---

@config_app.command("show")
def config_show():
    settings = _load_settings()
    typer.echo(f"Config file:        {CONFIG_FILE}")
    typer.echo(f"Clockify API key:   {_mask(settings.clockify_api_key)}")
    typer.echo(f"Workspace ID:       {settings.clockify_workspace_id or '(not set)'}")
    typer.echo(f"Project ID:         {settings.clockify_project_id or '(not set)'}")
    typer.echo(f"Jira base URL:      {settings.jira_base_url or '(not set)'}")
    typer.echo(f"Jira email:         {settings.jira_email or '(not set)'}")
    typer.echo(f"Jira API key:       {_mask(settings.jira_api_key)}")
    typer.echo(f"Report directory:   {settings.report_dir or '(not set)'}")
    typer.echo(f"Working hours:      {settings.default_start_time} - {settings.default_end_time}")
    typer.echo(f"Holiday calendar:   {settings.holiday_country}{'/' + settings.holiday_subdivision if settings.holiday_subdivision else ''}")
    typer.echo(f"Database:           {settings.database_url}")


async def _validate_connections(settings: Settings) -> dict:
    results = {}
    clockify = ClockifyConnector.from_settings(settings)
    try:
        results["Clockify"] = await clockify.validate_connection()
    finally:
        await clockify.close()

    jira = JiraConnector.from_settings(settings)
    if jira is not None:
        try:
            results["Jira"] = await jira.validate_connection()
        finally:
            await jira.close()
    return results


@config_app.command("validate")
def config_validate():
    """Check the configured credentials against Clockify (and Jira when set)."""
    settings = _load_settings()
    try:
        settings.require_clockify()
    except ConfigurationError as e:
        _fail(str(e))

    results = asyncio.run(_validate_connections(settings))
    for service, ok in results.items():
        typer.echo(f"{service}: {'OK' if ok else 'FAILED'}")
    if "Jira" not in results:
        typer.echo("Jira: not configured")
    if not all(results.values()):
        raise typer.Exit(code=1)


# --- status ---

@app.command()
def info():
    """Show configuration status and local ledger counts."""
    settings = _load_settings()
    missing = settings.missing_clockify_settings()
    typer.echo(f"clockify-auto {__version__}")
    typer.echo(f"Clockify: {'configured' if not missing else 'missing ' + ', '.join(missing)}")
    typer.echo(f"Jira: {'configured' if settings.jira_configured else 'not configured'}")
    ledger = _open_ledger(settings)
    typer.echo(f"Task assignments: {ledger.task_assignment_count()}")
    current = ledger.current_assignment()
    typer.echo(f"Current task: {current.description if current else '(none)'}")
    runs = ledger.recent_runs(limit=1)
    if runs:
        typer.echo(f"Last run: #{runs[0].id} {runs[0].status} at {runs[0].started_at}")


@app.command()
def history(limit: Annotated[int, typer.Option("--limit", "-n", min=1)] = 10):
    """Show recent runs."""
    ledger = _open_ledger(_load_settings())
    runs = ledger.recent_runs(limit=limit)
    if not runs:
        typer.echo("No runs recorded yet.")
        return
    for r in runs:
        line = (
            f"#{r.id} {r.started_at} {r.trigger_type} {r.status}: checked={r.dates_checked} "
            f"gaps={r.gaps_found} created={r.entries_created} failed={r.entries_failed} unknown={r.dates_unknown}"
        )
        if r.error_message:
            line += f" error={r.error_message}"
        typer.echo(line)


@app.command()
def schedule(cron: Annotated[Optional[str], typer.Option("--cron", help="Crontab expression, default weekdays 18:00")] = None):
    """Run the daily job on a schedule in the foreground until interrupted."""
    from clockify_auto.scheduler import run_forever

    settings = _load_settings()
    try:
        settings.require_clockify()
    except ConfigurationError as e:
        _fail(str(e))

    expression = cron or settings.schedule_cron
    typer.echo(f"Scheduling daily run with cron '{expression}'. Press Ctrl+C to stop.")
    try:
        asyncio.run(run_forever(expression))
    except ValueError as e:
        _fail(f"Invalid cron expression '{expression}': {e}")
    except KeyboardInterrupt:
        typer.echo("Scheduler stopped.")


def main():
    app()
