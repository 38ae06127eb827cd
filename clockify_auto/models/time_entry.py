"""Local record of time entries created in Clockify."""

from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Index, UniqueConstraint
from sqlalchemy.sql import func
from clockify_auto.database import Base


class TimeEntryRecord(Base):
    """A time entry this tool created (or observed) in Clockify."""

    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, index=True)

    # Remote identity (unique when present)
    clockify_id = Column(String(64), nullable=True)

    # Work information
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)

    # Local wall-clock times, HH:MM:SS
    start_time = Column(String(8), nullable=False)
    end_time = Column(String(8), nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    # Clockify scope
    project_id = Column(String(64), nullable=False)
    workspace_id = Column(String(64), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('clockify_id', name='uq_time_entries_clockify_id'),
        Index('idx_time_entries_date', 'date'),
    )

    def __repr__(self):
        return f"<TimeEntryRecord(id={self.id}, clockify_id='{self.clockify_id}', date='{self.date}', minutes={self.duration_minutes})>"
