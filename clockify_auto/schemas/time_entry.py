from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel

class TimeEntryRecordCreate(BaseModel):
    clockify_id: Optional[str] = None
    date: date
    description: str
    start_time: str  # local wall-clock HH:MM:SS
    end_time: str
    duration_minutes: int
    project_id: str
    workspace_id: str

class TimeEntryRecordRead(TimeEntryRecordCreate):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
