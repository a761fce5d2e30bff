"""JobRun model - execution history of scheduled jobs."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid

UPDATE_INSTALLMENT_STATUSES_JOB = "update-installment-statuses"
SEND_DUE_SOON_NOTIFICATIONS_JOB = "send-due-soon-notifications"


class JobRunStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class JobRun(Base):
    """Created as ``running`` at job start and completed exactly once."""

    __tablename__ = "jobs_log"
    __table_args__ = (
        Index("ix_jobs_log_job_name_started_at", "job_name", "started_at"),
        Index("ix_jobs_log_status", "status"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    job_name = Column(String(100), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default=JobRunStatus.RUNNING.value)
    records_updated = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
