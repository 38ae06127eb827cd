import httpx
import logging
from typing import Dict, Any, List, Optional

from pydantic import BaseModel

from clockify_auto.connectors.base import BaseConnector

log = logging.getLogger(__name__)

CURRENT_TASKS_JQL = 'assignee = currentUser() AND status != "Done" ORDER BY updated DESC'


class JiraIssue(BaseModel):
    key: str
    summary: str
    description: Optional[Any] = None
    status: Optional[str] = None


def _description_text(description: Any) -> Optional[str]:
    """
    Flatten a Jira description to plain text.
    API v3 returns Atlassian Document Format; older payloads are plain strings.
    """
    if description is None:
        return None
    if isinstance(description, str):
        return description or None

    parts: List[str] = []

    def walk(node: Any) -> None:
        if isinstance(node, dict):
            if node.get("type") == "text" and node.get("text"):
                parts.append(node["text"])
            for child in node.get("content") or []:
                walk(child)
        elif isinstance(node, list):
            for child in node:
                walk(child)

    walk(description)
    text = " ".join(" ".join(parts).split())
    return text or None


class JiraConnector(BaseConnector):
    """Connector for Jira Cloud, used only to derive task titles for time entries."""

    service_name = "Jira"

    def __init__(self, config: Dict[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        if not config.get("base_url") or not config.get("email") or not config.get("api_key"):
            raise ValueError(
                "Jira configuration is incomplete. Please set jira_base_url, jira_email, and jira_api_key."
            )
        self.base_url = config["base_url"].rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=(config["email"], config["api_key"]),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=config.get("timeout", 30.0),
            transport=transport,
        )
        log.info(f"Jira connector initialized for {self.base_url}")

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Optional["JiraConnector"]:
        """Build a connector, or None when Jira is not configured."""
        if not settings.jira_configured:
            return None
        return cls({
            "base_url": settings.jira_base_url,
            "email": settings.jira_email,
            "api_key": settings.jira_api_key,
            "timeout": settings.http_timeout_seconds,
        }, transport=transport)

    async def get_current_tasks(self) -> List[JiraIssue]:
        """Open issues assigned to the authenticated user, most recently updated first."""
        params = {
            "jql": CURRENT_TASKS_JQL,
            "fields": "key,summary,description,status",
            "maxResults": 50,
        }
        data = await self._request(self.client, "GET", "/rest/api/3/search/jql", params=params) or {}

        issues = []
        for issue in data.get("issues") or []:
            fields = issue.get("fields") or {}
            issues.append(JiraIssue(
                key=issue["key"],
                summary=fields.get("summary") or "",
                description=_description_text(fields.get("description")),
                status=(fields.get("status") or {}).get("name"),
            ))
        log.debug(f"Fetched {len(issues)} open Jira issues")
        return issues

    async def get_task_description(self, issue_key: str) -> str:
        """'summary: description' for an issue, or 'Task <key>' when it cannot be fetched."""
        try:
            data = await self._request(
                self.client, "GET", f"/rest/api/3/issue/{issue_key}",
                params={"fields": "summary,description"},
            ) or {}
            fields = data.get("fields") or {}
            summary = fields.get("summary") or ""
            description = _description_text(fields.get("description"))
            return f"{summary}: {description}" if description else summary
        except Exception as e:
            log.warning(f"Error fetching task description for {issue_key}: {e}")
            return f"Task {issue_key}"

    async def validate_connection(self) -> bool:
        try:
            await self._request(self.client, "GET", "/rest/api/3/myself")
            log.info("Jira connection validated successfully")
            return True
        except Exception as e:
            log.error(f"Jira connection validation failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
