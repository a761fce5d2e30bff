"""Job trigger and job ledger API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from payplan.core.auth import API_KEY_HEADER, get_settings, require_job_api_key
from payplan.core.config import Settings
from payplan.core.database import get_db
from payplan.core.errors import AuthenticationError
from payplan.models.job_run import UPDATE_INSTALLMENT_STATUSES_JOB
from payplan.repositories.job_run_repository import JobRunRepository
from payplan.schemas.job_health import JobHealthResponse, JobMetricsResponse
from payplan.schemas.job_run import (
    DispatchSummary,
    JobRunEnvelope,
    JobRunResponse,
    TenantResult,
)
from payplan.services.job_health_service import JobHealthService
from payplan.services.job_orchestrator import JobOrchestrator, JobResult

logger = logging.getLogger(__name__)

router = APIRouter()

_AUTH_RESPONSES: dict[int | str, dict[str, str]] = {
    401: {"description": "Unauthorized – invalid or missing API key"},
}


def get_job_orchestrator(
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
) -> JobOrchestrator:
    return JobOrchestrator.from_settings(db, app_settings)


def _envelope(result: JobResult) -> JobRunEnvelope:
    return JobRunEnvelope(
        success=result.success,
        records_updated=result.records_updated,
        tenants=[
            TenantResult(
                tenant_id=t.agency_id,
                updated_count=t.updated_count,
                transitions=t.transitions,
                error=t.error,
            )
            for t in result.tenants
        ],
        error=result.error,
        run_id=result.run_id,
        notifications=DispatchSummary(**result.dispatch.summary()) if result.dispatch else None,
    )


def _error_response(message: str) -> JSONResponse:
    body = JobRunEnvelope(success=False, error=message)
    return JSONResponse(status_code=500, content=body.model_dump(mode="json", by_alias=True))


async def _run(request: Request, orchestrator: JobOrchestrator, due_soon: bool) -> JobRunEnvelope | JSONResponse:
    token = request.headers.get(API_KEY_HEADER)
    try:
        if due_soon:
            result = await orchestrator.run_due_soon(token)
        else:
            result = await orchestrator.run_now(token)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from None
    except Exception as exc:
        logger.exception("Job trigger failed unexpectedly")
        return _error_response(str(exc))

    envelope = _envelope(result)
    if not result.success:
        return JSONResponse(status_code=500, content=envelope.model_dump(mode="json", by_alias=True))
    return envelope


@router.post(
    "/update-installment-statuses",
    response_model=JobRunEnvelope,
    summary="Mark overdue installments and notify",
    responses={
        **_AUTH_RESPONSES,
        500: {"description": "Job failed after retries or crashed"},
    },
)
async def update_installment_statuses(
    request: Request,
    orchestrator: JobOrchestrator = Depends(get_job_orchestrator),
) -> JobRunEnvelope | JSONResponse:
    """Run the overdue status transition for every agency."""
    return await _run(request, orchestrator, due_soon=False)


@router.post(
    "/send-due-soon-notifications",
    response_model=JobRunEnvelope,
    summary="Send due-soon reminders",
    responses={
        **_AUTH_RESPONSES,
        500: {"description": "Job failed after retries or crashed"},
    },
)
async def send_due_soon_notifications(
    request: Request,
    orchestrator: JobOrchestrator = Depends(get_job_orchestrator),
) -> JobRunEnvelope | JSONResponse:
    """Send reminders for installments falling due within each agency's window."""
    return await _run(request, orchestrator, due_soon=True)


@router.get(
    "/runs",
    response_model=list[JobRunResponse],
    summary="List job runs",
    responses=_AUTH_RESPONSES,
)
async def list_job_runs(
    job_name: str | None = None,
    status: str | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _: str = Depends(require_job_api_key),
) -> list[JobRunResponse]:
    """List job runs, newest first unless ``order_by`` says otherwise."""
    repo = JobRunRepository(db)
    runs = repo.get_all(
        job_name=job_name,
        status=status,
        skip=skip,
        limit=limit,
        order_by=order_by,
    )
    return [JobRunResponse.model_validate(r) for r in runs]


@router.get(
    "/health",
    response_model=JobHealthResponse,
    summary="Job health check",
    responses={503: {"description": "No successful run within the alert threshold"}},
)
async def job_health(
    response: Response,
    job_name: str = Query(default=UPDATE_INSTALLMENT_STATUSES_JOB),
    db: Session = Depends(get_db),
) -> JobHealthResponse:
    """Report whether the job has succeeded recently."""
    report = JobHealthService(db).check(job_name)
    if not report.ok:
        response.status_code = 503
    return JobHealthResponse.model_validate(report)


@router.get(
    "/metrics",
    response_model=JobMetricsResponse,
    summary="Job execution metrics",
    responses=_AUTH_RESPONSES,
)
async def job_metrics(
    job_name: str = Query(default=UPDATE_INSTALLMENT_STATUSES_JOB),
    days: int = Query(default=30, ge=1, le=365),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    _: str = Depends(require_job_api_key),
) -> JobMetricsResponse:
    """Summary, performance and daily trend of recent runs."""
    metrics = JobHealthService(db).metrics(job_name, days=days, limit=limit)
    return JobMetricsResponse.model_validate(metrics)
