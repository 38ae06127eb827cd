from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel

class TaskAssignmentBase(BaseModel):
    start_date: date
    project: str
    description: str

class TaskAssignmentCreate(TaskAssignmentBase):
    pass

class TaskAssignmentRead(TaskAssignmentBase):
    id: Optional[int] = None
    end_date: date  # derived: day before the next start date, or today for the latest
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
