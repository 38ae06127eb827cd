from datetime import date
from typing import Optional, List
from pydantic import BaseModel, Field

class DateFailure(BaseModel):
    date: date
    reason: str  # FailureReason value
    message: str

class GapFillSummary(BaseModel):
    window_start: Optional[date] = None
    window_end: Optional[date] = None
    checked: int = 0        # eligible business days checked remotely
    gaps: int = 0           # dates confirmed to have no remote entry
    created: int = 0
    failed: int = 0
    unknown: int = 0        # existence check errored; excluded from gaps
    missing_dates: List[date] = Field(default_factory=list)
    created_dates: List[date] = Field(default_factory=list)
    failures: List[DateFailure] = Field(default_factory=list)
    unknown_dates: List[DateFailure] = Field(default_factory=list)

class TodayResult(BaseModel):
    date: date
    status: str  # 'created', 'exists', 'skipped', 'failed'
    reason: Optional[str] = None
    description: Optional[str] = None
    entry_id: Optional[str] = None

class DailyRunResult(BaseModel):
    run_id: Optional[int] = None
    gap_fill: GapFillSummary
    today: Optional[TodayResult] = None
    report_path: Optional[str] = None

class SyncRunResponse(BaseModel):
    id: int
    trigger_type: str
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    status: str
    dates_checked: Optional[int] = None
    gaps_found: Optional[int] = None
    entries_created: Optional[int] = None
    entries_failed: Optional[int] = None
    dates_unknown: Optional[int] = None
    error_message: Optional[str] = None
