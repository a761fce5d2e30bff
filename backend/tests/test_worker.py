"""Tests for worker background tasks and cron job registration."""

from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from payplan.core import database as db_module
from payplan.models.installment import Installment
from payplan.models.job_run import UPDATE_INSTALLMENT_STATUSES_JOB, JobRun
from payplan.repositories.job_run_repository import JobRunRepository
from payplan.services.job_orchestrator import JobResult
from payplan.worker import (
    WorkerSettings,
    check_job_health_task,
    send_due_soon_notifications_task,
    startup,
    update_installment_statuses_task,
)
from tests.conftest import DEFAULT_AGENCY_ID, create_installment, create_plan


class TestUpdateInstallmentStatusesTask:
    @pytest.mark.asyncio
    async def test_runs_with_configured_key(self, db_session):
        """The task authenticates with JOB_API_KEY and returns the updated count."""
        plan = create_plan(db_session, DEFAULT_AGENCY_ID)
        inst = create_installment(db_session, plan.id, date.today() - timedelta(days=2))

        with (
            patch("payplan.worker.SessionLocal", db_module.SessionLocal),
            patch("payplan.worker.settings") as mock_settings,
            patch(
                "payplan.worker.JobOrchestrator.from_settings",
                side_effect=lambda db: _orchestrator_for(db, "worker-key"),
            ),
        ):
            mock_settings.JOB_API_KEY = "worker-key"
            result = await update_installment_statuses_task({})

        assert result == 1
        db_session.expire_all()
        assert db_session.get(Installment, inst.id).status == "overdue"
        assert db_session.query(JobRun).one().status == "success"

    @pytest.mark.asyncio
    async def test_missing_key_logs_and_returns_zero(self, db_session):
        """An unconfigured key rejects the run without a ledger entry."""
        with (
            patch("payplan.worker.SessionLocal", db_module.SessionLocal),
            patch("payplan.worker.settings") as mock_settings,
            patch(
                "payplan.worker.JobOrchestrator.from_settings",
                side_effect=lambda db: _orchestrator_for(db, ""),
            ),
        ):
            mock_settings.JOB_API_KEY = ""
            result = await update_installment_statuses_task({})

        assert result == 0
        assert db_session.query(JobRun).count() == 0

    @pytest.mark.asyncio
    async def test_closes_session(self):
        mock_db = MagicMock()
        orchestrator = MagicMock()
        orchestrator.run_now = AsyncMock(return_value=JobResult(success=True, records_updated=4))

        with (
            patch("payplan.worker.SessionLocal", return_value=mock_db),
            patch("payplan.worker.JobOrchestrator.from_settings", return_value=orchestrator),
        ):
            result = await update_installment_statuses_task({})

        assert result == 4
        mock_db.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_closes_session_on_error(self):
        mock_db = MagicMock()
        orchestrator = MagicMock()
        orchestrator.run_now = AsyncMock(side_effect=RuntimeError("boom"))

        with (
            patch("payplan.worker.SessionLocal", return_value=mock_db),
            patch("payplan.worker.JobOrchestrator.from_settings", return_value=orchestrator),
            pytest.raises(RuntimeError),
        ):
            await update_installment_statuses_task({})

        mock_db.close.assert_called_once()


class TestSendDueSoonNotificationsTask:
    @pytest.mark.asyncio
    async def test_returns_sent_count(self):
        mock_db = MagicMock()
        orchestrator = MagicMock()
        orchestrator.run_due_soon = AsyncMock(return_value=JobResult(success=True, records_updated=2))

        with (
            patch("payplan.worker.SessionLocal", return_value=mock_db),
            patch("payplan.worker.settings") as mock_settings,
            patch("payplan.worker.JobOrchestrator.from_settings", return_value=orchestrator),
        ):
            mock_settings.JOB_API_KEY = "worker-key"
            result = await send_due_soon_notifications_task({})

        assert result == 2
        orchestrator.run_due_soon.assert_awaited_once_with("worker-key")
        mock_db.close.assert_called_once()


class TestCheckJobHealthTask:
    @pytest.mark.asyncio
    async def test_alerts_when_never_succeeded(self, db_session):
        alerts = MagicMock()

        with (
            patch("payplan.worker.SessionLocal", db_module.SessionLocal),
            patch("payplan.worker.AlertService", return_value=alerts),
        ):
            status = await check_job_health_task({})

        assert status == "critical"
        alerts.job_unhealthy.assert_called_once()
        assert alerts.job_unhealthy.call_args[0][0] == UPDATE_INSTALLMENT_STATUSES_JOB

    @pytest.mark.asyncio
    async def test_quiet_when_healthy(self, db_session):
        repo = JobRunRepository(db_session)
        started = datetime.now(UTC) - timedelta(hours=1)
        run = repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, started)
        repo.mark_success(run.id, completed_at=started + timedelta(seconds=3), records_updated=0)
        alerts = MagicMock()

        with (
            patch("payplan.worker.SessionLocal", db_module.SessionLocal),
            patch("payplan.worker.AlertService", return_value=alerts),
        ):
            status = await check_job_health_task({})

        assert status == "healthy"
        alerts.job_unhealthy.assert_not_called()

    @pytest.mark.asyncio
    async def test_alerts_on_stuck_run(self, db_session):
        repo = JobRunRepository(db_session)
        started = datetime.now(UTC) - timedelta(hours=4)
        done = repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, started)
        repo.mark_success(done.id, completed_at=started + timedelta(seconds=3), records_updated=0)
        repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, datetime.now(UTC) - timedelta(hours=3))
        alerts = MagicMock()

        with (
            patch("payplan.worker.SessionLocal", db_module.SessionLocal),
            patch("payplan.worker.AlertService", return_value=alerts),
        ):
            status = await check_job_health_task({})

        assert status == "warning"
        alerts.job_unhealthy.assert_called_once()


class TestStartup:
    @pytest.mark.asyncio
    async def test_configures_logging(self):
        with patch("payplan.worker.logging.basicConfig") as basic_config:
            await startup({})

        basic_config.assert_called_once()
        assert basic_config.call_args.kwargs["level"] == "INFO"


class TestWorkerSettings:
    """Tests for WorkerSettings configuration."""

    def test_functions_registered(self):
        func_names = [f.__name__ for f in WorkerSettings.functions]
        assert func_names == [
            "update_installment_statuses_task",
            "send_due_soon_notifications_task",
            "check_job_health_task",
        ]

    def test_status_job_runs_daily_at_seven_utc(self):
        job = _cron("update_installment_statuses_task")
        assert job.hour == {7}
        assert job.minute == {0}

    def test_due_soon_job_runs_daily_at_nineteen_utc(self):
        job = _cron("send_due_soon_notifications_task")
        assert job.hour == {19}
        assert job.minute == {0}

    def test_health_check_runs_hourly(self):
        job = _cron("check_job_health_task")
        assert job.hour is None
        assert job.minute == {0}

    def test_on_startup(self):
        assert WorkerSettings.on_startup is startup


def _cron(name):  # type: ignore[no-untyped-def]
    return next(job for job in WorkerSettings.cron_jobs if job.coroutine.__name__ == name)


def _orchestrator_for(db, api_key):  # type: ignore[no-untyped-def]
    from payplan.services.job_orchestrator import JobOrchestrator

    return JobOrchestrator(db, api_key=api_key, alert_service=MagicMock(), sleep=AsyncMock())
