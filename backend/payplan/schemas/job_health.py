"""Pydantic schemas for job health and metrics."""

from datetime import datetime

from pydantic import BaseModel


class JobHealthResponse(BaseModel):
    ok: bool
    job_name: str
    status: str
    message: str
    last_success_at: datetime | None
    hours_since_success: float
    last_run_status: str | None
    stuck_run_ids: list[str]

    model_config = {"from_attributes": True}


class TimeRange(BaseModel):
    start: datetime
    end: datetime
    days: int


class MetricsSummary(BaseModel):
    total_runs: int
    successful_runs: int
    failed_runs: int
    success_rate: float
    total_records_updated: int


class MetricsPerformance(BaseModel):
    avg_duration_seconds: float
    min_duration_seconds: float
    max_duration_seconds: float


class RecentExecution(BaseModel):
    id: str
    started_at: datetime
    completed_at: datetime | None
    duration_seconds: float | None
    records_updated: int
    status: str
    error_message: str | None


class DailyTrendPoint(BaseModel):
    date: str
    runs: int
    successful_runs: int
    failed_runs: int
    total_records_updated: int
    avg_duration_seconds: float


class JobMetricsResponse(BaseModel):
    job_name: str
    time_range: TimeRange
    summary: MetricsSummary
    performance: MetricsPerformance
    recent_executions: list[RecentExecution]
    daily_trend: list[DailyTrendPoint]
