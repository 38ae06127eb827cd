"""Task assignment model: what work is described from a start date onwards."""

from sqlalchemy import Column, Integer, String, Date, DateTime, Text, UniqueConstraint
from sqlalchemy.sql import func
from clockify_auto.database import Base


class TaskAssignment(Base):
    """Open-ended task assignment, superseded by the next start date."""

    __tablename__ = "task_assignments"

    id = Column(Integer, primary_key=True, index=True)

    start_date = Column(Date, nullable=False)
    project = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('start_date', name='uq_task_assignments_start_date'),
    )

    def __repr__(self):
        return f"<TaskAssignment(id={self.id}, start='{self.start_date}', project='{self.project}')>"
