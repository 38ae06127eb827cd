"""One-shot import of task assignments from the legacy tasks.csv file."""

import csv
import logging
from pathlib import Path
from typing import List, Optional, Tuple, TYPE_CHECKING

from clockify_auto.utils.dates import to_date

if TYPE_CHECKING:
    from clockify_auto.services.ledger import LedgerService

log = logging.getLogger(__name__)


def read_legacy_tasks(path: Path) -> List[Tuple[str, str, str]]:
    """Rows of (start_date, project, description); the header row is optional."""
    rows = []
    with path.open(newline="", encoding="utf-8") as f:
        for record in csv.reader(f, delimiter=";"):
            if not record or not record[0].strip() or record[0].strip() == "start_date":
                continue
            start_date = record[0].strip()
            project = record[1].strip() if len(record) > 1 else ""
            description = record[2].strip() if len(record) > 2 else ""
            to_date(start_date)  # reject malformed dates before touching the ledger
            rows.append((start_date, project, description))
    return rows


def import_legacy_tasks_csv(ledger: 'LedgerService', path) -> Optional[int]:
    """
    Import the CSV into an empty task table, then rename it to <name>.backup.
    Returns the number of imported assignments, or None when nothing was done.
    """
    path = Path(path).expanduser()
    if not path.exists():
        return None
    if ledger.task_assignment_count() > 0:
        log.debug(f"Task assignments already present, ignoring {path}")
        return None

    log.info(f"Migrating tasks from {path} to the local database...")
    try:
        rows = read_legacy_tasks(path)
    except (OSError, ValueError, csv.Error) as e:
        log.error(f"Could not read legacy tasks file {path}, skipping import: {e}")
        return None

    for start_date, project, description in rows:
        ledger.upsert_task_assignment(start_date, project, description)

    backup = path.with_name(path.name + ".backup")
    path.rename(backup)
    log.info(f"Migrated {len(rows)} tasks; original file moved to {backup}")
    return len(rows)
