from datetime import date
from typing import Optional, List
from pydantic import BaseModel

class ReportEntry(BaseModel):
    date: date
    description: str
    start: str
    end: Optional[str] = None
    duration: Optional[str] = None  # ISO-8601, e.g. PT8H

class MonthlyReport(BaseModel):
    month: int
    year: int
    entries: List[ReportEntry]
    total_hours: float
