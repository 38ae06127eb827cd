"""Sync run model for tracking daily run executions."""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from clockify_auto.database import Base


class SyncRun(Base):
    """Run execution history and status tracking."""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)

    # Execution details
    trigger_type = Column(String(50), nullable=False, default='manual')  # 'manual', 'scheduled'
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(50), nullable=False)  # 'running', 'completed', 'failed'

    # Statistics
    dates_checked = Column(Integer, default=0, nullable=False)
    gaps_found = Column(Integer, default=0, nullable=False)
    entries_created = Column(Integer, default=0, nullable=False)
    entries_failed = Column(Integer, default=0, nullable=False)
    dates_unknown = Column(Integer, default=0, nullable=False)

    # Error information
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SyncRun(id={self.id}, trigger='{self.trigger_type}', status='{self.status}', created={self.entries_created})>"
