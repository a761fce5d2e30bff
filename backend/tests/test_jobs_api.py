"""Tests for the job trigger, ledger and monitoring endpoints."""

from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from payplan.core.auth import get_settings
from payplan.core.config import Settings
from payplan.core.database import get_db
from payplan.main import app
from payplan.models.job_run import SEND_DUE_SOON_NOTIFICATIONS_JOB, UPDATE_INSTALLMENT_STATUSES_JOB, JobRun
from payplan.repositories.job_run_repository import JobRunRepository
from payplan.repositories.notification_rule_repository import NotificationRuleRepository
from payplan.routers.jobs import get_job_orchestrator
from payplan.services.job_orchestrator import JobOrchestrator
from payplan.services.notification_dispatcher import NotificationDispatcher
from payplan.services.status_transition import StatusTransitionService
from tests.conftest import DEFAULT_AGENCY_ID, FakeDelivery, create_installment, create_plan

API_KEY = "job-secret"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def client():
    """Test client with a known job key and a recording email transport."""
    delivery = FakeDelivery()

    def orchestrator_override(db: Session = Depends(get_db)) -> JobOrchestrator:
        return JobOrchestrator(
            db,
            api_key=API_KEY,
            dispatcher_factory=lambda session: NotificationDispatcher(session, delivery),
            alert_service=MagicMock(),
            sleep=AsyncMock(),
        )

    app.dependency_overrides[get_settings] = lambda: Settings(JOB_API_KEY=API_KEY)
    app.dependency_overrides[get_job_orchestrator] = orchestrator_override
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_settings, None)
        app.dependency_overrides.pop(get_job_orchestrator, None)


def _past_due_installment(db):  # type: ignore[no-untyped-def]
    plan = create_plan(db, DEFAULT_AGENCY_ID)
    return create_installment(db, plan.id, date.today() - timedelta(days=3))


class TestUpdateInstallmentStatuses:
    URL = "/v1/jobs/update-installment-statuses"

    def test_missing_key_returns_401(self, client: TestClient, db_session) -> None:
        response = client.post(self.URL)

        assert response.status_code == 401
        assert db_session.query(JobRun).count() == 0

    def test_wrong_key_returns_401(self, client: TestClient, db_session) -> None:
        response = client.post(self.URL, headers={"X-API-Key": "guess"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid API key"
        assert db_session.query(JobRun).count() == 0

    def test_success_envelope(self, client: TestClient, db_session) -> None:
        inst = _past_due_installment(db_session)
        NotificationRuleRepository(db_session).create(
            agency_id=DEFAULT_AGENCY_ID, recipient_type="student", event_type="overdue"
        )

        response = client.post(self.URL, headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["recordsUpdated"] == 1
        assert data["error"] is None
        assert data["tenants"] == [
            {
                "tenantID": str(DEFAULT_AGENCY_ID),
                "updatedCount": 1,
                "transitions": {"pending_to_overdue": 1},
                "error": None,
            }
        ]
        assert data["notifications"] == {"total": 1, "sent": 1, "failed": 0, "skipped": 0}
        run = db_session.query(JobRun).one()
        assert data["runId"] == str(run.id)
        db_session.refresh(inst)
        assert inst.status == "overdue"

    def test_no_work_still_logs_run(self, client: TestClient, db_session) -> None:
        response = client.post(self.URL, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["recordsUpdated"] == 0
        assert response.json()["notifications"] is None
        assert db_session.query(JobRun).one().status == "success"

    def test_failed_run_returns_500(self, client: TestClient, db_session, monkeypatch) -> None:
        def broken(self, now=None, completed=None):  # type: ignore[no-untyped-def]
            raise ValueError("relation installments does not exist")

        monkeypatch.setattr(StatusTransitionService, "transition_overdue", broken)

        response = client.post(self.URL, headers=HEADERS)

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert "does not exist" in data["error"]
        assert data["runId"] is not None
        assert db_session.query(JobRun).one().status == "failed"


class TestSendDueSoonNotifications:
    URL = "/v1/jobs/send-due-soon-notifications"

    def test_requires_key(self, client: TestClient) -> None:
        assert client.post(self.URL).status_code == 401

    def test_runs(self, client: TestClient, db_session) -> None:
        response = client.post(self.URL, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["success"] is True
        run = db_session.query(JobRun).one()
        assert run.job_name == SEND_DUE_SOON_NOTIFICATIONS_JOB


class TestListRuns:
    def test_requires_key(self, client: TestClient) -> None:
        assert client.get("/v1/jobs/runs").status_code == 401

    def test_lists_newest_first(self, client: TestClient, db_session) -> None:
        repo = JobRunRepository(db_session)
        older = repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, datetime(2025, 3, 1, 7, tzinfo=UTC))
        repo.mark_success(older.id, completed_at=datetime(2025, 3, 1, 7, 1, tzinfo=UTC), records_updated=2)
        newer = repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, datetime(2025, 3, 2, 7, tzinfo=UTC))

        response = client.get("/v1/jobs/runs", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert [r["id"] for r in data] == [str(newer.id), str(older.id)]
        assert data[0]["status"] == "running"
        assert data[1]["records_updated"] == 2

    def test_filter_by_status(self, client: TestClient, db_session) -> None:
        repo = JobRunRepository(db_session)
        repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, datetime(2025, 3, 1, 7, tzinfo=UTC))
        done = repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, datetime(2025, 3, 2, 7, tzinfo=UTC))
        repo.mark_failed(done.id, completed_at=datetime(2025, 3, 2, 7, 1, tzinfo=UTC), error_message="x")

        response = client.get("/v1/jobs/runs?status=failed", headers=HEADERS)

        assert [r["id"] for r in response.json()] == [str(done.id)]


class TestHealth:
    def test_never_ran_is_503(self, client: TestClient) -> None:
        response = client.get("/v1/jobs/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "critical"
        assert data["ok"] is False
        assert data["hours_since_success"] == 999.0

    def test_recent_success_is_healthy(self, client: TestClient, db_session) -> None:
        repo = JobRunRepository(db_session)
        started = datetime.now(UTC) - timedelta(hours=2)
        run = repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, started)
        repo.mark_success(run.id, completed_at=started + timedelta(seconds=5), records_updated=0)

        response = client.get("/v1/jobs/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestMetrics:
    def test_requires_key(self, client: TestClient) -> None:
        assert client.get("/v1/jobs/metrics").status_code == 401

    def test_shape(self, client: TestClient, db_session) -> None:
        repo = JobRunRepository(db_session)
        started = datetime.now(UTC) - timedelta(hours=5)
        run = repo.start(UPDATE_INSTALLMENT_STATUSES_JOB, started)
        repo.mark_success(run.id, completed_at=started + timedelta(seconds=12), records_updated=7)

        response = client.get("/v1/jobs/metrics?days=7&limit=5", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["job_name"] == UPDATE_INSTALLMENT_STATUSES_JOB
        assert data["time_range"]["days"] == 7
        assert data["summary"]["total_runs"] == 1
        assert data["summary"]["success_rate"] == 100.0
        assert data["summary"]["total_records_updated"] == 7
        assert data["performance"]["avg_duration_seconds"] == 12.0
        assert data["recent_executions"][0]["id"] == str(run.id)
        assert len(data["daily_trend"]) == 1

    @pytest.mark.parametrize("query", ["days=0", "days=400", "limit=0", "limit=101"])
    def test_rejects_out_of_range(self, client: TestClient, query: str) -> None:
        response = client.get(f"/v1/jobs/metrics?{query}", headers=HEADERS)
        assert response.status_code == 422
