import logging
from typing import Optional, TYPE_CHECKING

from clockify_auto.utils.dates import DateLike

if TYPE_CHECKING:
    from clockify_auto.connectors.jira_connector import JiraConnector
    from clockify_auto.services.ledger import LedgerService

log = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "General work"


class DescriptionResolver:
    """
    Picks the description for a day's time entry.

    Order: the task assignment covering the day, then the title of the most
    recently updated open Jira issue, then DEFAULT_DESCRIPTION. Jira is
    best-effort; its failures never reach the caller.
    """

    def __init__(self, ledger: 'LedgerService', jira_connector: Optional['JiraConnector'] = None):
        self.ledger = ledger
        self.jira_connector = jira_connector

    async def fetch_current_assigned_task_title(self) -> Optional[str]:
        if self.jira_connector is None:
            return None
        try:
            issues = await self.jira_connector.get_current_tasks()
        except Exception as e:
            log.warning(f"Could not fetch Jira tasks, falling back to default description: {e}")
            return None
        if not issues:
            log.info("No open Jira issues assigned to the current user")
            return None
        title = issues[0].summary or None
        log.info(f"Using Jira task {issues[0].key} as fallback description")
        return title

    def resolve_description_for_date(self, day: DateLike, fallback_title: Optional[str] = None) -> str:
        assignment = self.ledger.assignment_covering_date(day)
        if assignment is not None:
            return assignment.description
        if fallback_title:
            return fallback_title
        return DEFAULT_DESCRIPTION

    async def resolve_description_for_today(self, day: DateLike) -> str:
        """Resolve for a single date, consulting Jira directly instead of a pre-fetched title."""
        assignment = self.ledger.assignment_covering_date(day)
        if assignment is not None:
            return assignment.description
        title = await self.fetch_current_assigned_task_title()
        return title or DEFAULT_DESCRIPTION
