"""Tests for the manual notification dispatch endpoint."""

import uuid
from datetime import date

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from payplan.core.auth import get_settings
from payplan.core.config import Settings
from payplan.core.database import get_db
from payplan.main import app
from payplan.models.notification_log import NotificationLogEntry
from payplan.repositories.notification_rule_repository import NotificationRuleRepository
from payplan.routers.notifications import get_notification_dispatcher
from payplan.services.notification_dispatcher import NotificationDispatcher
from tests.conftest import DEFAULT_AGENCY_ID, FakeDelivery, create_installment, create_plan

API_KEY = "job-secret"
HEADERS = {"X-API-Key": API_KEY}
URL = "/v1/notifications/dispatch"


@pytest.fixture
def delivery():
    return FakeDelivery()


@pytest.fixture
def client(delivery):
    def dispatcher_override(db: Session = Depends(get_db)) -> NotificationDispatcher:
        return NotificationDispatcher(db, delivery, app_url="https://app.example.com")

    app.dependency_overrides[get_settings] = lambda: Settings(JOB_API_KEY=API_KEY)
    app.dependency_overrides[get_notification_dispatcher] = dispatcher_override
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_settings, None)
        app.dependency_overrides.pop(get_notification_dispatcher, None)


@pytest.fixture
def overdue(db_session):
    plan = create_plan(db_session, DEFAULT_AGENCY_ID)
    NotificationRuleRepository(db_session).create(
        agency_id=DEFAULT_AGENCY_ID, recipient_type="student", event_type="overdue"
    )
    return create_installment(db_session, plan.id, date(2025, 1, 15), status="overdue")


class TestDispatchEndpoint:
    def test_requires_key(self, client: TestClient, overdue) -> None:
        response = client.post(URL, json={"installmentIds": [str(overdue.id)], "eventType": "overdue"})
        assert response.status_code == 401

    def test_sends_and_records(self, client: TestClient, delivery, overdue, db_session) -> None:
        response = client.post(
            URL,
            json={"installmentIds": [str(overdue.id)], "eventType": "overdue"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["event_type"] == "overdue"
        assert data["summary"] == {"total": 1, "sent": 1, "failed": 0, "skipped": 0}
        result = data["results"][0]
        assert result["installment_id"] == str(overdue.id)
        assert result["recipient_type"] == "student"
        assert result["status"] == "sent"
        assert result["recipient_email"] == "student@example.com"
        assert len(delivery.sent) == 1
        assert db_session.query(NotificationLogEntry).count() == 1

    def test_second_call_is_skipped(self, client: TestClient, delivery, overdue) -> None:
        body = {"installmentIds": [str(overdue.id)], "eventType": "overdue"}
        client.post(URL, json=body, headers=HEADERS)

        response = client.post(URL, json=body, headers=HEADERS)

        assert response.json()["summary"] == {"total": 1, "sent": 0, "failed": 0, "skipped": 1}
        assert response.json()["results"][0]["reason"] == "already notified"
        assert len(delivery.sent) == 1

    def test_unknown_installment_skipped(self, client: TestClient) -> None:
        missing = uuid.uuid4()

        response = client.post(
            URL, json={"installmentIds": [str(missing)], "eventType": "overdue"}, headers=HEADERS
        )

        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["status"] == "skipped"
        assert result["reason"] == "installment not found"

    @pytest.mark.parametrize(
        "body",
        [
            {"installmentIds": [], "eventType": "overdue"},
            {"installmentIds": ["not-a-uuid"], "eventType": "overdue"},
            {"installmentIds": [str(uuid.uuid4())], "eventType": "payment_exploded"},
            {"eventType": "overdue"},
        ],
    )
    def test_validation(self, client: TestClient, body) -> None:
        assert client.post(URL, json=body, headers=HEADERS).status_code == 422
