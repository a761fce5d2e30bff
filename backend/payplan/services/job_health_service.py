"""Health checks and execution metrics computed from the job ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from payplan.core.config import settings
from payplan.models.job_run import UPDATE_INSTALLMENT_STATUSES_JOB, JobRun, JobRunStatus
from payplan.models.shared import as_utc, utc_now
from payplan.repositories.job_run_repository import JobRunRepository

HEALTHY = "healthy"
WARNING = "warning"
CRITICAL = "critical"

HEALTHY_WITHIN_HOURS = 24
NEVER_RAN_HOURS = 999.0


@dataclass
class HealthReport:
    job_name: str
    status: str
    message: str
    last_success_at: datetime | None
    hours_since_success: float
    last_run_status: str | None = None
    stuck_run_ids: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != CRITICAL


def duration_seconds(run: JobRun) -> float | None:
    if run.completed_at is None or run.started_at is None:
        return None
    delta = as_utc(run.completed_at) - as_utc(run.started_at)  # type: ignore[arg-type]
    return round(delta.total_seconds(), 2)


def classify(hours_since_success: float, alert_hours: float) -> str:
    if hours_since_success <= HEALTHY_WITHIN_HOURS:
        return HEALTHY
    if hours_since_success <= alert_hours:
        return WARNING
    return CRITICAL


class JobHealthService:
    def __init__(
        self,
        db: Session,
        alert_hours: float | None = None,
        stuck_after_hours: float | None = None,
    ):
        self.repo = JobRunRepository(db)
        self.alert_hours = alert_hours if alert_hours is not None else settings.JOB_HEALTH_ALERT_HOURS
        self.stuck_after_hours = (
            stuck_after_hours if stuck_after_hours is not None else settings.JOB_STUCK_AFTER_HOURS
        )

    def check(
        self,
        job_name: str = UPDATE_INSTALLMENT_STATUSES_JOB,
        now: datetime | None = None,
    ) -> HealthReport:
        """Classify a job by the age of its last successful run.

        ``healthy`` within 24 hours, ``warning`` up to the alert threshold and
        ``critical`` beyond it or when the job never succeeded. Runs stuck in
        ``running`` downgrade a healthy job to ``warning``.
        """
        now = as_utc(now or utc_now())
        last_success = self.repo.get_latest(job_name, status=JobRunStatus.SUCCESS.value)
        last_run = self.repo.get_latest(job_name)
        stuck = self.repo.get_stuck(job_name, now - timedelta(hours=self.stuck_after_hours))

        if last_success is None:
            hours = NEVER_RAN_HOURS
            last_success_at = None
        else:
            last_success_at = as_utc(last_success.started_at)  # type: ignore[arg-type]
            hours = round((now - last_success_at).total_seconds() / 3600, 1)

        status = classify(hours, self.alert_hours)
        if status == HEALTHY:
            message = "Job running normally"
        elif status == WARNING:
            message = "Job slightly delayed but within tolerance"
        elif last_success is None:
            message = "Job has never completed successfully"
        else:
            message = f"Job has not succeeded in {round(hours)} hours - missed execution detected"

        if stuck:
            if status == HEALTHY:
                status = WARNING
            message = f"{message}; {len(stuck)} run(s) stuck in running state"

        return HealthReport(
            job_name=job_name,
            status=status,
            message=message,
            last_success_at=last_success_at,
            hours_since_success=hours,
            last_run_status=str(last_run.status) if last_run else None,
            stuck_run_ids=[str(run.id) for run in stuck],
        )

    def metrics(
        self,
        job_name: str = UPDATE_INSTALLMENT_STATUSES_JOB,
        days: int = 30,
        limit: int = 10,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Summary, performance, recent executions and daily trend over ``days``."""
        now = as_utc(now or utc_now())
        start = now - timedelta(days=days)
        runs = self.repo.get_since(job_name, start)

        successful = [r for r in runs if r.status == JobRunStatus.SUCCESS.value]
        failed = [r for r in runs if r.status == JobRunStatus.FAILED.value]
        durations = [d for d in (duration_seconds(r) for r in successful) if d is not None]

        return {
            "job_name": job_name,
            "time_range": {"start": start, "end": now, "days": days},
            "summary": {
                "total_runs": len(runs),
                "successful_runs": len(successful),
                "failed_runs": len(failed),
                "success_rate": round(len(successful) / len(runs) * 100, 2) if runs else 0.0,
                "total_records_updated": sum(int(r.records_updated or 0) for r in runs),
            },
            "performance": {
                "avg_duration_seconds": round(sum(durations) / len(durations), 2) if durations else 0.0,
                "min_duration_seconds": min(durations) if durations else 0.0,
                "max_duration_seconds": max(durations) if durations else 0.0,
            },
            "recent_executions": [
                {
                    "id": str(r.id),
                    "started_at": as_utc(r.started_at),  # type: ignore[arg-type]
                    "completed_at": as_utc(r.completed_at) if r.completed_at else None,  # type: ignore[arg-type]
                    "duration_seconds": duration_seconds(r),
                    "records_updated": int(r.records_updated or 0),
                    "status": str(r.status),
                    "error_message": r.error_message,
                }
                for r in runs[:limit]
            ],
            "daily_trend": _daily_trend(runs),
        }


def _daily_trend(runs: list[JobRun]) -> list[dict[str, Any]]:
    by_day: dict[str, list[JobRun]] = {}
    for run in runs:
        day = as_utc(run.started_at).date().isoformat()  # type: ignore[arg-type]
        by_day.setdefault(day, []).append(run)

    trend = []
    for day in sorted(by_day, reverse=True):
        day_runs = by_day[day]
        ok = [r for r in day_runs if r.status == JobRunStatus.SUCCESS.value]
        durations = [d for d in (duration_seconds(r) for r in ok) if d is not None]
        trend.append(
            {
                "date": day,
                "runs": len(day_runs),
                "successful_runs": len(ok),
                "failed_runs": sum(1 for r in day_runs if r.status == JobRunStatus.FAILED.value),
                "total_records_updated": sum(int(r.records_updated or 0) for r in day_runs),
                "avg_duration_seconds": round(sum(durations) / len(durations), 2) if durations else 0.0,
            }
        )
    return trend
