import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from payplan.core.config import settings
from payplan.routers import jobs, notifications

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {
        "name": "Jobs",
        "description": "Trigger scheduled jobs and inspect their execution history and health.",
    },
    {"name": "Notifications", "description": "Dispatch installment notifications on demand."},
]


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.job_auth_enabled:
        logger.warning("JOB_API_KEY is empty; job endpoints will reject every request")
    yield


def cors_origins() -> list[str]:
    return [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Automated installment status detection and notification dispatch. "
        "Marks overdue installments per agency timezone and emails the configured recipients."
    ),
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)

app.include_router(jobs.router, prefix="/v1/jobs", tags=["Jobs"])
app.include_router(notifications.router, prefix="/v1/notifications", tags=["Notifications"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
