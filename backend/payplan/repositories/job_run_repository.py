"""JobRun repository for the job execution ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from payplan.core.sorting import apply_order_by
from payplan.models.job_run import JobRun, JobRunStatus


class JobRunRepository:
    """Repository for JobRun model."""

    def __init__(self, db: Session):
        self.db = db

    def start(self, job_name: str, started_at: datetime) -> JobRun:
        """Create a ``running`` entry at job start."""
        run = JobRun(
            job_name=job_name,
            started_at=started_at,
            status=JobRunStatus.RUNNING.value,
            records_updated=0,
        )
        self.db.add(run)
        self.db.commit()
        self.db.refresh(run)
        return run

    def get_by_id(self, run_id: UUID) -> JobRun | None:
        return self.db.query(JobRun).filter(JobRun.id == run_id).first()

    def _complete(
        self,
        run_id: UUID,
        status: JobRunStatus,
        completed_at: datetime,
        records_updated: int,
        error_message: str | None,
        metadata: dict[str, Any] | None,
    ) -> JobRun | None:
        run = self.get_by_id(run_id)
        if not run:
            return None
        if run.status != JobRunStatus.RUNNING.value:
            # Completed runs are immutable.
            return run

        run.status = status.value  # type: ignore[assignment]
        run.completed_at = completed_at  # type: ignore[assignment]
        run.records_updated = records_updated  # type: ignore[assignment]
        run.error_message = error_message  # type: ignore[assignment]
        run.metadata_ = metadata  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(run)
        return run

    def mark_success(
        self,
        run_id: UUID,
        *,
        completed_at: datetime,
        records_updated: int,
        metadata: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> JobRun | None:
        """Mark a run as succeeded."""
        return self._complete(
            run_id, JobRunStatus.SUCCESS, completed_at, records_updated, error_message, metadata
        )

    def mark_failed(
        self,
        run_id: UUID,
        *,
        completed_at: datetime,
        error_message: str,
        metadata: dict[str, Any] | None = None,
    ) -> JobRun | None:
        """Mark a run as failed."""
        return self._complete(
            run_id, JobRunStatus.FAILED, completed_at, 0, error_message, metadata
        )

    def get_all(
        self,
        job_name: str | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
        order_by: str | None = None,
    ) -> list[JobRun]:
        query = self.db.query(JobRun)
        if job_name:
            query = query.filter(JobRun.job_name == job_name)
        if status:
            query = query.filter(JobRun.status == status)
        query = apply_order_by(query, JobRun, order_by, default_field="started_at")
        return query.offset(skip).limit(limit).all()

    def get_latest(self, job_name: str, status: str | None = None) -> JobRun | None:
        query = self.db.query(JobRun).filter(JobRun.job_name == job_name)
        if status:
            query = query.filter(JobRun.status == status)
        return query.order_by(JobRun.started_at.desc()).first()

    def get_since(self, job_name: str, since: datetime) -> list[JobRun]:
        return (
            self.db.query(JobRun)
            .filter(JobRun.job_name == job_name, JobRun.started_at >= since)
            .order_by(JobRun.started_at.desc())
            .all()
        )

    def get_stuck(self, job_name: str, started_before: datetime) -> list[JobRun]:
        """Runs still ``running`` that started before the given time."""
        return (
            self.db.query(JobRun)
            .filter(
                JobRun.job_name == job_name,
                JobRun.status == JobRunStatus.RUNNING.value,
                JobRun.started_at < started_before,
            )
            .order_by(JobRun.started_at.asc())
            .all()
        )
