"""NotificationLogEntry model - ledger of successfully sent notification emails."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class NotificationLogEntry(Base):
    """One row per email actually sent.

    The unique key is the only guard against re-sending the same event to the
    same recipient across repeated runs, retries or overlapping dispatches.
    """

    __tablename__ = "notification_log"
    __table_args__ = (
        UniqueConstraint(
            "installment_id",
            "recipient_type",
            "recipient_email",
            "event_type",
            name="uq_notification_log_installment_recipient_event",
        ),
        Index("ix_notification_log_sent_at", "sent_at"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    installment_id = Column(
        UUIDType,
        ForeignKey("installments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    recipient_type = Column(String(30), nullable=False)
    recipient_email = Column(String(255), nullable=False)
    event_type = Column(String(30), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    template_id = Column(
        UUIDType,
        ForeignKey("email_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    email_subject = Column(String(500), nullable=True)
    message_id = Column(String(255), nullable=True)
