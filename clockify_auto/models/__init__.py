"""Database models."""

from clockify_auto.models.task_assignment import TaskAssignment
from clockify_auto.models.time_entry import TimeEntryRecord
from clockify_auto.models.sync_run import SyncRun

__all__ = [
    "TaskAssignment",
    "TimeEntryRecord",
    "SyncRun",
]
