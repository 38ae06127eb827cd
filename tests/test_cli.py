import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from clockify_auto.cli import app
from clockify_auto.config import Settings
from clockify_auto.connectors.base import AuthenticationError
from clockify_auto.schemas.sync import DailyRunResult, DateFailure, GapFillSummary, TodayResult

runner = CliRunner()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        clockify_api_key="abcd1234secret",
        clockify_workspace_id="ws",
        clockify_project_id="proj",
        database_url=f"sqlite:///{tmp_path / 'cli.db'}",
        legacy_tasks_csv=str(tmp_path / "tasks.csv"),
    )


@pytest.fixture
def patched_settings(settings):
    with patch("clockify_auto.cli.get_settings", return_value=settings):
        yield settings


def _service(result=None, error=None):
    service = MagicMock()
    service.run_daily = AsyncMock(return_value=result, side_effect=error)
    service.close = AsyncMock()
    return service


def test_run_refuses_incomplete_configuration(tmp_path):
    settings = Settings(_env_file=None, database_url=f"sqlite:///{tmp_path / 'cli.db'}")
    settings.clockify_api_key = None
    settings.clockify_workspace_id = None
    settings.clockify_project_id = None
    with patch("clockify_auto.cli.get_settings", return_value=settings):
        result = runner.invoke(app, ["run"])
    assert result.exit_code == 1
    assert "Clockify configuration is incomplete" in result.output


def test_run_prints_summary(patched_settings):
    summary = GapFillSummary(
        checked=12, gaps=2, created=1, failed=1,
        failures=[DateFailure(date="2025-01-08", reason="TRANSIENT", message="Clockify temporarily unavailable")],
    )
    daily = DailyRunResult(
        run_id=1,
        gap_fill=summary,
        today=TodayResult(date="2025-01-20", status="created", description="Work", entry_id="e1"),
    )
    service = _service(result=daily)
    with patch("clockify_auto.cli.SyncService.from_settings", return_value=service):
        result = runner.invoke(app, ["run"])

    assert result.exit_code == 0, result.output
    assert "Checked: 12 dates" in result.output
    assert "Failed:  1" in result.output
    assert "2025-01-08: Clockify temporarily unavailable" in result.output
    assert "added entry 'Work'" in result.output
    service.close.assert_awaited_once()


def test_run_exits_nonzero_on_authentication_error(patched_settings):
    service = _service(error=AuthenticationError("Clockify authentication failed (HTTP 401).", service="Clockify"))
    with patch("clockify_auto.cli.SyncService.from_settings", return_value=service):
        result = runner.invoke(app, ["run"])

    assert result.exit_code == 1
    assert "authentication failed" in result.output
    service.close.assert_awaited_once()


def test_tasks_add_list_current_remove(patched_settings):
    result = runner.invoke(app, ["tasks", "add", "2025-01-01", "proj", "Importer work"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["tasks", "list"])
    assert "2025-01-01" in result.output
    assert "Importer work" in result.output

    result = runner.invoke(app, ["tasks", "current"])
    assert "Importer work" in result.output

    result = runner.invoke(app, ["tasks", "remove", "2025-01-01"])
    assert result.exit_code == 0
    result = runner.invoke(app, ["tasks", "remove", "2025-01-01"])
    assert result.exit_code == 1


def test_tasks_add_rejects_bad_date(patched_settings):
    result = runner.invoke(app, ["tasks", "add", "01/02/2025", "proj", "Work"])
    assert result.exit_code == 2


def test_history_and_entries_empty(patched_settings):
    result = runner.invoke(app, ["history"])
    assert result.exit_code == 0
    assert "No runs recorded yet." in result.output

    result = runner.invoke(app, ["entries", "list", "--date", "2025-01-07"])
    assert result.exit_code == 0
    assert "No time entries recorded." in result.output


def test_config_show_masks_secrets(patched_settings):
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "abcd****" in result.output
    assert "abcd1234secret" not in result.output


def test_report_requires_report_dir(patched_settings):
    patched_settings.report_dir = None
    result = runner.invoke(app, ["report"])
    assert result.exit_code == 1
    assert "Report directory not configured" in result.output
