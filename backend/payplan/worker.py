import logging
from typing import Any

from arq import cron

from payplan.core.config import settings
from payplan.core.database import SessionLocal
from payplan.core.errors import AuthenticationError
from payplan.models.job_run import SEND_DUE_SOON_NOTIFICATIONS_JOB, UPDATE_INSTALLMENT_STATUSES_JOB
from payplan.services.alert_service import AlertService
from payplan.services.job_health_service import CRITICAL, JobHealthService
from payplan.services.job_orchestrator import JobOrchestrator
from payplan.tasks import redis_settings

logger = logging.getLogger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Worker started for %s %s", settings.APP_NAME, settings.version)


async def update_installment_statuses_task(ctx: dict[str, Any]) -> int:
    """Background task: mark overdue installments and send overdue notifications.

    Runs daily at 07:00 UTC (17:00 in Australia/Brisbane).
    """
    db = SessionLocal()
    try:
        orchestrator = JobOrchestrator.from_settings(db)
        try:
            result = await orchestrator.run_now(settings.JOB_API_KEY)
        except AuthenticationError as exc:
            logger.error("%s not run: %s", UPDATE_INSTALLMENT_STATUSES_JOB, exc)
            return 0
        return result.records_updated
    finally:
        db.close()


async def send_due_soon_notifications_task(ctx: dict[str, Any]) -> int:
    """Background task: send reminders for installments falling due soon.

    Runs daily at 19:00 UTC.
    """
    db = SessionLocal()
    try:
        orchestrator = JobOrchestrator.from_settings(db)
        try:
            result = await orchestrator.run_due_soon(settings.JOB_API_KEY)
        except AuthenticationError as exc:
            logger.error("%s not run: %s", SEND_DUE_SOON_NOTIFICATIONS_JOB, exc)
            return 0
        return result.records_updated
    finally:
        db.close()


async def check_job_health_task(ctx: dict[str, Any]) -> str:
    """Background task: alert when the status job missed its schedule.

    Runs hourly.
    """
    db = SessionLocal()
    try:
        report = JobHealthService(db).check(UPDATE_INSTALLMENT_STATUSES_JOB)
        if report.status == CRITICAL or report.stuck_run_ids:
            logger.warning("Job %s is %s: %s", report.job_name, report.status, report.message)
            AlertService().job_unhealthy(report.job_name, report.status, report.message)
        return report.status
    finally:
        db.close()


class WorkerSettings:
    functions = [
        update_installment_statuses_task,
        send_due_soon_notifications_task,
        check_job_health_task,
    ]
    cron_jobs = [
        cron(update_installment_statuses_task, hour={7}, minute={0}),  # daily 07:00 UTC
        cron(send_due_soon_notifications_task, hour={19}, minute={0}),  # daily 19:00 UTC
        cron(check_job_health_task, minute={0}),  # hourly
    ]
    on_startup = startup
    redis_settings = redis_settings
