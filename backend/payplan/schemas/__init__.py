from payplan.schemas.job_health import JobHealthResponse, JobMetricsResponse
from payplan.schemas.job_run import (
    DispatchSummary,
    JobRunEnvelope,
    JobRunResponse,
    TenantResult,
)
from payplan.schemas.notification import (
    DispatchRequest,
    DispatchResponse,
    RecipientResultResponse,
)

__all__ = [
    "DispatchRequest",
    "DispatchResponse",
    "DispatchSummary",
    "JobHealthResponse",
    "JobMetricsResponse",
    "JobRunEnvelope",
    "JobRunResponse",
    "RecipientResultResponse",
    "TenantResult",
]
