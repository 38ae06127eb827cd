"""Application configuration management."""

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple, Type

from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_DIR = Path(os.path.expanduser("~/.clockify-auto-cli"))
CONFIG_FILE = Path(os.environ.get("CLOCKIFY_AUTO_CONFIG_FILE", str(CONFIG_DIR / "config.json")))

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ConfigurationError(Exception):
    """Raised when required settings are missing or unreadable."""


def _choices(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class Settings(BaseSettings):
    """Application settings loaded from init kwargs, environment, .env and config.json."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=CONFIG_FILE,
        json_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() not in ("TRACE", "VERBOSE"):
            self.log_level = "DEBUG"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
        )

    # Clockify
    clockify_api_key: Optional[str] = Field(None, validation_alias=_choices("clockify_api_key", "clockifyApiKey"))
    clockify_workspace_id: Optional[str] = Field(None, validation_alias=_choices("clockify_workspace_id", "workspaceId"))
    clockify_project_id: Optional[str] = Field(None, validation_alias=_choices("clockify_project_id", "projectId"))
    clockify_base_url: str = "https://api.clockify.me/api/v1"
    clockify_reports_url: str = "https://reports.api.clockify.me/v1"

    # Jira (optional)
    jira_base_url: Optional[str] = Field(None, validation_alias=_choices("jira_base_url", "jiraBaseUrl"))
    jira_email: Optional[str] = Field(None, validation_alias=_choices("jira_email", "jiraEmail"))
    jira_api_key: Optional[str] = Field(None, validation_alias=_choices("jira_api_key", "jiraApiKey"))

    # Reports
    report_dir: Optional[str] = Field(None, validation_alias=_choices("report_dir", "reportDir"))

    # Working hours (local wall-clock, HH:MM)
    default_start_time: str = Field("09:00", validation_alias=_choices("default_start_time", "defaultStartTime"))
    default_end_time: str = Field("17:00", validation_alias=_choices("default_end_time", "defaultEndTime"))

    # Holiday calendar
    holiday_country: str = "BR"
    holiday_subdivision: Optional[str] = None

    # Local storage
    database_url: str = f"sqlite:///{CONFIG_DIR / 'clockify.db'}"
    legacy_tasks_csv: str = str(CONFIG_DIR / "tasks.csv")

    # Rate limiting
    check_batch_size: int = Field(10, gt=0)
    check_batch_delay_seconds: float = Field(1.0, ge=0)
    create_batch_size: int = Field(5, gt=0)
    create_batch_delay_seconds: float = Field(0.5, ge=0)
    http_timeout_seconds: float = Field(30.0, gt=0)

    # Scheduling
    schedule_cron: str = "0 18 * * 1-5"

    # Application
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("default_start_time", "default_end_time")
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        """Validate HH:MM wall-clock time."""
        if not _TIME_RE.match(v):
            raise ValueError(f'Invalid time format: {v}. Use HH:MM format (e.g., "09:00")')
        return v

    @model_validator(mode="after")
    def validate_time_range(self) -> "Settings":
        if self.default_end_time <= self.default_start_time:
            raise ValueError(
                f"default_end_time ({self.default_end_time}) must be after "
                f"default_start_time ({self.default_start_time})"
            )
        return self

    def missing_clockify_settings(self) -> List[str]:
        """Return the names of required Clockify settings that are not set."""
        missing = []
        if not self.clockify_api_key:
            missing.append("clockify_api_key")
        if not self.clockify_workspace_id:
            missing.append("clockify_workspace_id")
        if not self.clockify_project_id:
            missing.append("clockify_project_id")
        return missing

    def require_clockify(self) -> None:
        missing = self.missing_clockify_settings()
        if missing:
            raise ConfigurationError(
                "Clockify configuration is incomplete. Missing: " + ", ".join(missing)
            )

    @property
    def jira_configured(self) -> bool:
        return bool(self.jira_base_url and self.jira_email and self.jira_api_key)


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process, converting validation failures to ConfigurationError."""
    try:
        return Settings()
    except (ValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
