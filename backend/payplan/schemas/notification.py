"""Pydantic schemas for notification dispatch."""

from uuid import UUID

from pydantic import BaseModel, Field

from payplan.models.notification_rule import NotificationEventType


class DispatchRequest(BaseModel):
    installment_ids: list[UUID] = Field(alias="installmentIds", min_length=1, max_length=1000)
    event_type: NotificationEventType = Field(alias="eventType")

    model_config = {"populate_by_name": True}


class RecipientResultResponse(BaseModel):
    installment_id: UUID
    recipient_type: str
    status: str
    recipient_email: str | None
    message_id: str | None
    reason: str | None

    model_config = {"from_attributes": True}


class DispatchResponse(BaseModel):
    event_type: str
    summary: dict[str, int]
    results: list[RecipientResultResponse]
