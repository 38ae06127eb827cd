import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from clockify_auto.database import SessionLocal
from clockify_auto.models.sync_run import SyncRun
from clockify_auto.models.task_assignment import TaskAssignment
from clockify_auto.models.time_entry import TimeEntryRecord
from clockify_auto.schemas.sync import GapFillSummary, SyncRunResponse
from clockify_auto.schemas.task import TaskAssignmentRead
from clockify_auto.schemas.time_entry import TimeEntryRecordCreate, TimeEntryRecordRead
from clockify_auto.utils.dates import DateLike, to_date

log = logging.getLogger(__name__)


class LedgerService:
    """
    Local bookkeeping: task assignments, time entries created by this tool, and run history.
    Every public operation is its own transaction; storage errors propagate.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal, today: Optional[Callable[[], date]] = None):
        self._session_factory = session_factory
        self._today = today or date.today

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # --- Task assignments ---

    def upsert_task_assignment(self, start_date: DateLike, project: str, description: str) -> int:
        start = to_date(start_date)
        with self._session() as db:
            assignment = db.query(TaskAssignment).filter(TaskAssignment.start_date == start).first()
            if assignment:
                assignment.project = project
                assignment.description = description
                log.info(f"Updated task assignment starting {start}")
            else:
                assignment = TaskAssignment(start_date=start, project=project, description=description)
                db.add(assignment)
                log.info(f"Added task assignment starting {start}")
            db.flush()
            return assignment.id

    def _with_end_dates(self, rows: List[TaskAssignment], today: Optional[DateLike] = None) -> List[TaskAssignmentRead]:
        """Derive each end date from the next start date; the latest runs until today."""
        today = to_date(today) if today is not None else self._today()
        ordered = sorted(rows, key=lambda r: r.start_date)
        result = []
        for i, row in enumerate(ordered):
            if i + 1 < len(ordered):
                end_date = ordered[i + 1].start_date - timedelta(days=1)
            else:
                end_date = today
            result.append(TaskAssignmentRead(
                id=row.id,
                start_date=row.start_date,
                project=row.project,
                description=row.description,
                end_date=end_date,
                created_at=row.created_at,
                updated_at=row.updated_at,
            ))
        return result

    def all_task_assignments(self, today: Optional[DateLike] = None) -> List[TaskAssignmentRead]:
        with self._session() as db:
            rows = db.query(TaskAssignment).order_by(TaskAssignment.start_date.asc()).all()
            return self._with_end_dates(rows, today)

    def assignment_covering_date(self, day: DateLike, today: Optional[DateLike] = None) -> Optional[TaskAssignmentRead]:
        d = to_date(day)
        for assignment in self.all_task_assignments(today):
            if assignment.covers(d):
                return assignment
        return None

    def current_assignment(self, today: Optional[DateLike] = None) -> Optional[TaskAssignmentRead]:
        today = to_date(today) if today is not None else self._today()
        return self.assignment_covering_date(today, today)

    def tasks_in_date_range(self, start: DateLike, end: DateLike, today: Optional[DateLike] = None) -> List[TaskAssignmentRead]:
        """Assignments whose effective range overlaps [start, end]."""
        range_start, range_end = to_date(start), to_date(end)
        return [
            a for a in self.all_task_assignments(today)
            if a.start_date <= range_end and a.end_date >= range_start
        ]

    def remove_assignment(self, start_date: DateLike) -> bool:
        start = to_date(start_date)
        with self._session() as db:
            deleted = db.query(TaskAssignment).filter(TaskAssignment.start_date == start).delete()
        if deleted:
            log.info(f"Removed task assignment starting {start}")
        return bool(deleted)

    def remove_assignment_by_id(self, assignment_id: int) -> bool:
        with self._session() as db:
            deleted = db.query(TaskAssignment).filter(TaskAssignment.id == assignment_id).delete()
        return bool(deleted)

    def task_assignment_count(self) -> int:
        with self._session() as db:
            return db.query(func.count(TaskAssignment.id)).scalar() or 0

    # --- Time entries ---

    def record_time_entry(self, record: TimeEntryRecordCreate) -> TimeEntryRecordRead:
        with self._session() as db:
            entry = TimeEntryRecord(**record.model_dump())
            db.add(entry)
            db.flush()
            db.refresh(entry)
            log.debug(f"Recorded time entry {record.clockify_id} for {record.date}")
            return TimeEntryRecordRead.model_validate(entry)

    def time_entries_for_date(self, day: DateLike) -> List[TimeEntryRecordRead]:
        d = to_date(day)
        with self._session() as db:
            rows = db.query(TimeEntryRecord).filter(TimeEntryRecord.date == d).order_by(TimeEntryRecord.id).all()
            return [TimeEntryRecordRead.model_validate(r) for r in rows]

    def has_local_entry_for_date(self, day: DateLike) -> bool:
        d = to_date(day)
        with self._session() as db:
            return db.query(TimeEntryRecord.id).filter(TimeEntryRecord.date == d).first() is not None

    def time_entries_in_range(self, start: DateLike, end: DateLike) -> List[TimeEntryRecordRead]:
        with self._session() as db:
            rows = (
                db.query(TimeEntryRecord)
                .filter(TimeEntryRecord.date >= to_date(start), TimeEntryRecord.date <= to_date(end))
                .order_by(TimeEntryRecord.date, TimeEntryRecord.id)
                .all()
            )
            return [TimeEntryRecordRead.model_validate(r) for r in rows]

    def attach_remote_id(self, local_id: int, remote_id: str) -> bool:
        """Set the remote id on a record that does not have one yet."""
        with self._session() as db:
            entry = db.query(TimeEntryRecord).filter(TimeEntryRecord.id == local_id).first()
            if entry is None or entry.clockify_id is not None:
                return False
            entry.clockify_id = remote_id
            return True

    def delete_time_entry(self, remote_id: str) -> bool:
        with self._session() as db:
            deleted = db.query(TimeEntryRecord).filter(TimeEntryRecord.clockify_id == remote_id).delete()
        return bool(deleted)

    # --- Run history ---

    def start_run(self, trigger_type: str = "manual") -> int:
        with self._session() as db:
            run = SyncRun(trigger_type=trigger_type, start_time=datetime.now(timezone.utc), status="running")
            db.add(run)
            db.flush()
            return run.id

    def finish_run(self, run_id: int, summary: GapFillSummary, status: str = "completed") -> None:
        with self._session() as db:
            run = db.query(SyncRun).filter(SyncRun.id == run_id).first()
            if run is None:
                log.warning(f"Sync run {run_id} not found")
                return
            run.status = status
            run.end_time = datetime.now(timezone.utc)
            run.dates_checked = summary.checked
            run.gaps_found = summary.gaps
            run.entries_created = summary.created
            run.entries_failed = summary.failed
            run.dates_unknown = summary.unknown

    def fail_run(self, run_id: int, message: str) -> None:
        with self._session() as db:
            run = db.query(SyncRun).filter(SyncRun.id == run_id).first()
            if run is None:
                log.warning(f"Sync run {run_id} not found")
                return
            run.status = "failed"
            run.end_time = datetime.now(timezone.utc)
            run.error_message = message

    def recent_runs(self, limit: int = 10) -> List[SyncRunResponse]:
        with self._session() as db:
            runs = db.query(SyncRun).order_by(SyncRun.id.desc()).limit(limit).all()
            return [
                SyncRunResponse(
                    id=run.id,
                    trigger_type=run.trigger_type,
                    started_at=run.start_time.isoformat() if run.start_time else None,
                    ended_at=run.end_time.isoformat() if run.end_time else None,
                    status=run.status,
                    dates_checked=run.dates_checked,
                    gaps_found=run.gaps_found,
                    entries_created=run.entries_created,
                    entries_failed=run.entries_failed,
                    dates_unknown=run.dates_unknown,
                    error_message=run.error_message,
                )
                for run in runs
            ]
