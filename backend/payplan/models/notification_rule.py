"""Per-agency rules deciding who is emailed for which installment event."""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class RecipientType(str, Enum):
    TENANT_STAFF = "tenant_staff"
    STUDENT = "student"
    PARTNER_ORG = "partner_org"
    ASSIGNED_AGENT = "assigned_agent"


class NotificationEventType(str, Enum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    PAYMENT_RECEIVED = "payment_received"


class NotificationRule(Base):
    __tablename__ = "notification_rules"
    __table_args__ = (
        UniqueConstraint(
            "agency_id",
            "recipient_type",
            "event_type",
            name="uq_notification_rules_agency_recipient_event",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    agency_id = Column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    recipient_type = Column(String(30), nullable=False)
    event_type = Column(String(30), nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=False)
    template_id = Column(
        UUIDType,
        ForeignKey("email_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    # e.g. {"advance_hours": 36} for due_soon rules
    trigger_config = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
