import pytest

from clockify_auto.config import ConfigurationError, Settings


def _settings(**kwargs):
    return Settings(_env_file=None, **kwargs)


def test_defaults():
    settings = _settings()
    assert settings.default_start_time == "09:00"
    assert settings.default_end_time == "17:00"
    assert settings.check_batch_size == 10
    assert settings.create_batch_size == 5
    assert settings.schedule_cron == "0 18 * * 1-5"
    assert settings.holiday_country == "BR"


def test_camel_case_keys_accepted():
    settings = _settings(clockifyApiKey="key", workspaceId="ws", projectId="proj", defaultStartTime="08:00")
    assert settings.clockify_api_key == "key"
    assert settings.clockify_workspace_id == "ws"
    assert settings.clockify_project_id == "proj"
    assert settings.default_start_time == "08:00"
    assert settings.missing_clockify_settings() == []


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("CLOCKIFY_API_KEY", "env-key")
    monkeypatch.setenv("CLOCKIFY_WORKSPACE_ID", "env-ws")
    settings = _settings()
    assert settings.clockify_api_key == "env-key"
    assert settings.clockify_workspace_id == "env-ws"


def test_missing_clockify_settings(monkeypatch):
    for name in ("CLOCKIFY_API_KEY", "CLOCKIFY_WORKSPACE_ID", "CLOCKIFY_PROJECT_ID"):
        monkeypatch.delenv(name, raising=False)
    settings = _settings(clockify_api_key="key")
    if settings.clockify_workspace_id or settings.clockify_project_id:
        pytest.skip("Clockify settings present in local config file")
    assert settings.missing_clockify_settings() == ["clockify_workspace_id", "clockify_project_id"]
    with pytest.raises(ConfigurationError):
        settings.require_clockify()


@pytest.mark.parametrize("value", ["9:00", "25:00", "09:60", "nine"])
def test_invalid_time_format(value):
    with pytest.raises(ValueError):
        _settings(default_start_time=value)


def test_end_must_follow_start():
    with pytest.raises(ValueError):
        _settings(default_start_time="17:00", default_end_time="09:00")


def test_jira_configured_requires_all_fields(monkeypatch):
    for name in ("JIRA_BASE_URL", "JIRA_EMAIL", "JIRA_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    assert not _settings(jira_base_url="https://x", jira_email="a@b", jira_api_key="").jira_configured
    assert _settings(jira_base_url="https://x", jira_email="a@b", jira_api_key="t").jira_configured


def test_debug_forces_debug_level():
    assert _settings(debug=True).log_level == "DEBUG"
    assert _settings(debug=True, log_level="TRACE").log_level == "TRACE"
