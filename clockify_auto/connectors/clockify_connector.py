import asyncio
import httpx
import logging
from typing import Dict, Any, List, Optional
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from clockify_auto.connectors.base import BaseConnector, ValidationError
from clockify_auto.utils.dates import (
    DateLike,
    local_datetime,
    local_day_bounds,
    parse_hhmm,
    parse_iso_datetime,
    to_date,
    to_utc_iso,
)

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.clockify.me/api/v1"
DEFAULT_REPORTS_URL = "https://reports.api.clockify.me/v1"


def format_seconds_to_iso8601(seconds: float) -> str:
    """
    Convert a duration in seconds to the ISO-8601 form Clockify uses (PT8H30M).
    Seconds are truncated; a zero duration is PT0M.
    """
    total = int(seconds or 0)
    hours = total // 3600
    minutes = (total % 3600) // 60

    duration = "PT"
    if hours > 0:
        duration += f"{hours}H"
    if minutes > 0:
        duration += f"{minutes}M"
    if hours == 0 and minutes == 0:
        duration += "0M"
    return duration


class TimeInterval(BaseModel):
    start: str
    end: Optional[str] = None
    duration: Optional[str] = None


class RemoteTimeEntry(BaseModel):
    """Clockify's representation of a time entry."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    description: Optional[str] = ""
    time_interval: TimeInterval = Field(..., alias="timeInterval")
    project_id: Optional[str] = Field(None, alias="projectId")
    project_name: Optional[str] = Field(None, alias="projectName")
    user_id: Optional[str] = Field(None, alias="userId")
    user_name: Optional[str] = Field(None, alias="userName")
    billable: bool = False

    @property
    def entry_date(self) -> date:
        """Local calendar day the entry starts on."""
        return parse_iso_datetime(self.time_interval.start).astimezone().date()


class TimeEntryDraft(BaseModel):
    """A time entry ready to be sent to Clockify."""
    description: str
    start: datetime
    end: datetime
    billable: bool = False

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def to_payload(self, project_id: str) -> Dict[str, Any]:
        return {
            "description": self.description,
            "start": to_utc_iso(self.start),
            "end": to_utc_iso(self.end),
            "projectId": project_id,
            "billable": self.billable,
        }


class CreatedTimeEntry(BaseModel):
    """Result of a successful create call, with the scope it was created in."""
    entry: RemoteTimeEntry
    draft: TimeEntryDraft
    project_id: str
    workspace_id: str


class ClockifyConnector(BaseConnector):
    """
    Connector for the Clockify time tracking API.
    Handles existence checks, creating, listing and deleting time entries
    for the authenticated user in a single workspace/project.
    """

    service_name = "Clockify"

    def __init__(self, config: Dict[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        if not config.get("api_key") or not config.get("workspace_id") or not config.get("project_id"):
            raise ValueError(
                "Clockify configuration is incomplete. Please set clockify_api_key, "
                "clockify_workspace_id, and clockify_project_id."
            )
        self.api_key = config["api_key"]
        self.workspace_id = config["workspace_id"]
        self.project_id = config["project_id"]
        self.base_url = config.get("base_url", DEFAULT_BASE_URL).rstrip("/")
        self.reports_url = config.get("reports_url", DEFAULT_REPORTS_URL).rstrip("/")
        self.default_start_time = config.get("default_start_time") or "09:00"
        self.default_end_time = config.get("default_end_time") or "17:00"

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "X-Api-Key": self.api_key,
                "Content-Type": "application/json",
            },
            timeout=config.get("timeout", 30.0),
            transport=transport,
        )

        self._user_id: Optional[str] = None
        self._user_id_lock = asyncio.Lock()

        log.info(f"Clockify connector initialized for workspace {self.workspace_id}")

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ClockifyConnector":
        return cls({
            "api_key": settings.clockify_api_key,
            "workspace_id": settings.clockify_workspace_id,
            "project_id": settings.clockify_project_id,
            "base_url": settings.clockify_base_url,
            "reports_url": settings.clockify_reports_url,
            "default_start_time": settings.default_start_time,
            "default_end_time": settings.default_end_time,
            "timeout": settings.http_timeout_seconds,
        }, transport=transport)

    async def resolve_current_user_id(self) -> str:
        """
        Resolve the authenticated user's id once per connector instance.
        Concurrent first callers wait on the same resolution; failures are not cached.
        """
        if self._user_id is not None:
            return self._user_id
        async with self._user_id_lock:
            if self._user_id is None:
                data = await self._request(self.client, "GET", "/user")
                user_id = (data or {}).get("id")
                if not user_id:
                    raise ValueError("Invalid response from Clockify: missing user ID")
                self._user_id = user_id
                log.debug(f"Resolved Clockify user id {user_id}")
        return self._user_id

    def _user_entries_path(self, user_id: str) -> str:
        return f"/workspaces/{self.workspace_id}/user/{user_id}/time-entries"

    async def get_time_entries_for_date(self, day: DateLike) -> List[RemoteTimeEntry]:
        user_id = await self.resolve_current_user_id()
        start, end = local_day_bounds(day)
        params = {
            "start": to_utc_iso(start),
            "end": to_utc_iso(end),
            "page-size": 50,
        }
        data = await self._request(self.client, "GET", self._user_entries_path(user_id), params=params)
        entries = [RemoteTimeEntry.model_validate(item) for item in (data or [])]
        log.trace(f"Clockify has {len(entries)} entries on {to_date(day)}")
        return entries

    async def has_entry_for_date(self, day: DateLike) -> bool:
        entries = await self.get_time_entries_for_date(day)
        return len(entries) > 0

    def build_time_entry(
        self,
        day: DateLike,
        description: str,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> TimeEntryDraft:
        """Apply wall-clock start/end times (or the configured defaults) to a day."""
        start = local_datetime(day, parse_hhmm(start_time or self.default_start_time))
        end = local_datetime(day, parse_hhmm(end_time or self.default_end_time))
        if end <= start:
            raise ValidationError(
                f"Invalid time entry for {to_date(day)}: end {end.strftime('%H:%M')} "
                f"must be after start {start.strftime('%H:%M')}",
                service=self.service_name,
            )
        return TimeEntryDraft(description=description, start=start, end=end, billable=False)

    async def add_time_entry(self, draft: TimeEntryDraft) -> RemoteTimeEntry:
        """POST a prepared draft. Not idempotent: every success is a new remote entry."""
        user_id = await self.resolve_current_user_id()
        payload = draft.to_payload(self.project_id)
        data = await self._request(self.client, "POST", self._user_entries_path(user_id), json=payload)
        entry = RemoteTimeEntry.model_validate(data)
        log.info(f"Created Clockify time entry {entry.id} ({payload['start']} - {payload['end']})")
        return entry

    async def create_entry(
        self,
        description: str,
        day: DateLike,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> CreatedTimeEntry:
        draft = self.build_time_entry(day, description, start_time, end_time)
        entry = await self.add_time_entry(draft)
        return CreatedTimeEntry(
            entry=entry,
            draft=draft,
            project_id=self.project_id,
            workspace_id=self.workspace_id,
        )

    async def list_entries_for_date_range(self, start: DateLike, end: DateLike, page_size: int = 200) -> List[RemoteTimeEntry]:
        """All of the user's entries overlapping [start, end], following pagination."""
        user_id = await self.resolve_current_user_id()
        range_start, _ = local_day_bounds(start)
        _, range_end = local_day_bounds(end)
        entries: List[RemoteTimeEntry] = []
        page = 1
        while True:
            params = {
                "start": to_utc_iso(range_start),
                "end": to_utc_iso(range_end),
                "page": page,
                "page-size": page_size,
            }
            data = await self._request(self.client, "GET", self._user_entries_path(user_id), params=params) or []
            entries.extend(RemoteTimeEntry.model_validate(item) for item in data)
            if len(data) < page_size:
                break
            page += 1
        log.info(f"Fetched {len(entries)} Clockify entries from {to_date(start)} to {to_date(end)}")
        return entries

    async def fetch_detailed_report(self, start: DateLike, end: DateLike) -> List[RemoteTimeEntry]:
        """Workspace detailed report; durations arrive in seconds and are converted."""
        range_start, _ = local_day_bounds(start)
        _, range_end = local_day_bounds(end)
        payload = {
            "dateRangeStart": to_utc_iso(range_start),
            "dateRangeEnd": to_utc_iso(range_end),
            "detailedFilter": {
                "page": 1,
                "pageSize": 1000,
            },
            "exportType": "JSON",
            "amountShown": "HIDE_AMOUNT",  # required to avoid 403 without rate permissions
        }
        url = f"{self.reports_url}/workspaces/{self.workspace_id}/reports/detailed"
        data = await self._request(self.client, "POST", url, json=payload) or {}

        entries = []
        for item in data.get("timeentries") or []:
            interval = item.get("timeInterval") or {}
            entries.append(RemoteTimeEntry(
                id=item["_id"],
                description=item.get("description") or "",
                time_interval=TimeInterval(
                    start=interval.get("start"),
                    end=interval.get("end"),
                    duration=format_seconds_to_iso8601(interval.get("duration") or 0),
                ),
                project_id=item.get("projectId"),
                project_name=item.get("projectName"),
                user_id=item.get("userId"),
                user_name=item.get("userName"),
                billable=bool(item.get("billable", False)),
            ))
        log.info(f"Clockify detailed report returned {len(entries)} entries")
        return entries

    async def delete_entry(self, entry_id: str) -> bool:
        await self._request(self.client, "DELETE", f"/workspaces/{self.workspace_id}/time-entries/{entry_id}")
        log.info(f"Deleted Clockify time entry {entry_id}")
        return True

    async def validate_connection(self) -> bool:
        try:
            await self.resolve_current_user_id()
            log.info("Clockify connection validated successfully")
            return True
        except Exception as e:
            log.error(f"Clockify connection validation failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
