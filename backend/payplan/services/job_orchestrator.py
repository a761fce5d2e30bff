"""Job orchestrator: authenticated, retried and logged runs of the status jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from payplan.core.auth import verify_api_key
from payplan.core.config import Settings, settings
from payplan.core.retry import RetryPolicy, with_retry
from payplan.models.job_run import SEND_DUE_SOON_NOTIFICATIONS_JOB, UPDATE_INSTALLMENT_STATUSES_JOB
from payplan.models.notification_rule import NotificationEventType
from payplan.models.shared import utc_now
from payplan.repositories.job_run_repository import JobRunRepository
from payplan.services.alert_service import AlertService
from payplan.services.email_service import get_email_delivery
from payplan.services.notification_dispatcher import DispatchResult, NotificationDispatcher
from payplan.services.status_transition import (
    StatusTransitionService,
    TenantDueSoonResult,
    TenantTransitionResult,
)

logger = logging.getLogger(__name__)

DispatcherFactory = Callable[[Session], NotificationDispatcher]


def default_dispatcher_factory(db: Session) -> NotificationDispatcher:
    return NotificationDispatcher(db, get_email_delivery())


@dataclass
class JobResult:
    success: bool
    records_updated: int = 0
    tenants: list[TenantTransitionResult] = field(default_factory=list)
    error: str | None = None
    run_id: UUID | None = None
    attempts: int = 0
    dispatch: DispatchResult | None = None


class JobOrchestrator:
    """Entry point for the scheduled jobs.

    Authentication happens before anything is written: a rejected call leaves
    no JobRun behind. Every authenticated call creates exactly one JobRun,
    which is completed once as ``success`` or ``failed``.
    """

    def __init__(
        self,
        db: Session,
        api_key: str,
        retry_policy: RetryPolicy | None = None,
        dispatcher_factory: DispatcherFactory | None = None,
        alert_service: AlertService | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.api_key = api_key
        self.retry_policy = retry_policy or RetryPolicy()
        self.dispatcher_factory = dispatcher_factory or default_dispatcher_factory
        self.alert_service = alert_service or AlertService()
        self.sleep = sleep
        self.clock = clock
        self.job_runs = JobRunRepository(db)
        self.engine = StatusTransitionService(db)

    @classmethod
    def from_settings(
        cls,
        db: Session,
        app_settings: Settings = settings,
        **kwargs: Any,
    ) -> JobOrchestrator:
        return cls(
            db,
            api_key=app_settings.JOB_API_KEY,
            retry_policy=RetryPolicy(
                max_attempts=app_settings.JOB_MAX_ATTEMPTS,
                base_delay=app_settings.JOB_RETRY_BASE_DELAY,
            ),
            **kwargs,
        )

    async def run_now(self, token: str | None, now: datetime | None = None) -> JobResult:
        """Transition overdue installments and notify about them.

        Raises:
            AuthenticationError: If ``token`` does not match the configured key.
        """
        verify_api_key(token, self.api_key)

        run = self.job_runs.start(UPDATE_INSTALLMENT_STATUSES_JOB, self.clock())
        run_id: UUID = run.id  # type: ignore[assignment]
        logger.info("Job %s started (run %s)", UPDATE_INSTALLMENT_STATUSES_JOB, run_id)

        completed: dict[UUID, TenantTransitionResult] = {}

        async def attempt() -> list[TenantTransitionResult]:
            return self.engine.transition_overdue(now=now, completed=completed)

        outcome = await with_retry(attempt, self.retry_policy, sleep=self.sleep)
        if not outcome.succeeded:
            return self._fail(
                UPDATE_INSTALLMENT_STATUSES_JOB,
                run_id,
                outcome.error,
                attempts=outcome.attempts,
                metadata={
                    "attempts": outcome.attempts,
                    "agencies": [_tenant_metadata(r) for r in completed.values()],
                },
            )

        tenants: list[TenantTransitionResult] = outcome.value or []
        total = sum(t.updated_count for t in tenants)
        failed = [t for t in tenants if not t.ok]
        error_message = (
            "; ".join(f"agency {t.agency_id}: {t.error}" for t in failed) if failed else None
        )
        metadata: dict[str, Any] = {
            "attempts": outcome.attempts,
            "agencies": [_tenant_metadata(t) for t in tenants],
        }
        if failed:
            metadata["failed_agencies"] = [str(t.agency_id) for t in failed]

        self.job_runs.mark_success(
            run_id,
            completed_at=self.clock(),
            records_updated=total,
            metadata=metadata,
            error_message=error_message,
        )
        logger.info(
            "Job %s succeeded: %d installments marked overdue across %d agencies",
            UPDATE_INSTALLMENT_STATUSES_JOB,
            total,
            len(tenants),
        )

        changed_ids = [i for t in tenants for i in t.newly_overdue_ids]
        dispatch = await self._dispatch_best_effort(
            changed_ids, NotificationEventType.OVERDUE.value, run_id
        )
        return JobResult(
            success=True,
            records_updated=total,
            tenants=tenants,
            error=error_message,
            run_id=run_id,
            attempts=outcome.attempts,
            dispatch=dispatch,
        )

    async def run_due_soon(self, token: str | None, now: datetime | None = None) -> JobResult:
        """Send ``due_soon`` reminders for installments inside each agency's window.

        ``records_updated`` counts notifications sent.

        Raises:
            AuthenticationError: If ``token`` does not match the configured key.
        """
        verify_api_key(token, self.api_key)

        run = self.job_runs.start(SEND_DUE_SOON_NOTIFICATIONS_JOB, self.clock())
        run_id: UUID = run.id  # type: ignore[assignment]

        async def attempt() -> list[TenantDueSoonResult]:
            return self.engine.find_due_soon(now=now)

        outcome = await with_retry(attempt, self.retry_policy, sleep=self.sleep)
        if not outcome.succeeded:
            return self._fail(
                SEND_DUE_SOON_NOTIFICATIONS_JOB,
                run_id,
                outcome.error,
                attempts=outcome.attempts,
                metadata={"attempts": outcome.attempts},
            )

        scans: list[TenantDueSoonResult] = outcome.value or []
        installment_ids = [i for scan in scans for i in scan.installment_ids]
        try:
            dispatch = await self.dispatcher_factory(self.db).dispatch(
                installment_ids, NotificationEventType.DUE_SOON.value
            )
        except Exception as exc:
            logger.exception("Due-soon dispatch failed for run %s", run_id)
            return self._fail(
                SEND_DUE_SOON_NOTIFICATIONS_JOB,
                run_id,
                exc,
                attempts=outcome.attempts,
                metadata={"attempts": outcome.attempts, "candidates": len(installment_ids)},
            )

        failed_scans = [s for s in scans if s.error]
        error_message = (
            "; ".join(f"agency {s.agency_id}: {s.error}" for s in failed_scans)
            if failed_scans
            else None
        )
        self.job_runs.mark_success(
            run_id,
            completed_at=self.clock(),
            records_updated=dispatch.sent,
            error_message=error_message,
            metadata={
                "attempts": outcome.attempts,
                "candidates": len(installment_ids),
                "agencies": [
                    {
                        "agency_id": str(s.agency_id),
                        "candidates": len(s.installment_ids),
                        "window": [str(s.window_start), str(s.window_end)] if s.window_start else None,
                        "error": s.error,
                    }
                    for s in scans
                ],
                "dispatch": dispatch.summary(),
            },
        )
        logger.info(
            "Job %s succeeded: %s",
            SEND_DUE_SOON_NOTIFICATIONS_JOB,
            dispatch.summary(),
        )
        return JobResult(
            success=True,
            records_updated=dispatch.sent,
            error=error_message,
            run_id=run_id,
            attempts=outcome.attempts,
            dispatch=dispatch,
        )

    def _fail(
        self,
        job_name: str,
        run_id: UUID,
        error: BaseException | None,
        attempts: int,
        metadata: dict[str, Any],
    ) -> JobResult:
        message = str(error) if error is not None else "unknown error"
        self.db.rollback()
        self.job_runs.mark_failed(
            run_id,
            completed_at=self.clock(),
            error_message=message,
            metadata=metadata,
        )
        logger.error("Job %s failed after %d attempt(s): %s", job_name, attempts, message)
        self.alert_service.job_failed(job_name, run_id, message)
        return JobResult(success=False, error=message, run_id=run_id, attempts=attempts)

    async def _dispatch_best_effort(
        self,
        installment_ids: list[UUID],
        event_type: str,
        run_id: UUID,
    ) -> DispatchResult | None:
        if not installment_ids:
            return None
        try:
            dispatcher = self.dispatcher_factory(self.db)
            return await dispatcher.dispatch(installment_ids, event_type)
        except Exception:
            logger.exception(
                "Notification dispatch failed after run %s; the run stays successful",
                run_id,
            )
            self.db.rollback()
            return None


def _tenant_metadata(result: TenantTransitionResult) -> dict[str, Any]:
    return {
        "agency_id": str(result.agency_id),
        "updated_count": result.updated_count,
        "transitions": result.transitions,
        "error": result.error,
    }
