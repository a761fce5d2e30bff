"""Repository for the notification send ledger."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payplan.models.notification_log import NotificationLogEntry

logger = logging.getLogger(__name__)


class NotificationLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def exists(
        self,
        *,
        installment_id: UUID,
        recipient_type: str,
        recipient_email: str,
        event_type: str,
    ) -> bool:
        """Whether this event was already sent to this recipient for this installment."""
        return (
            self.db.query(NotificationLogEntry.id)
            .filter(
                NotificationLogEntry.installment_id == installment_id,
                NotificationLogEntry.recipient_type == recipient_type,
                NotificationLogEntry.recipient_email == recipient_email,
                NotificationLogEntry.event_type == event_type,
            )
            .first()
            is not None
        )

    def record_sent(
        self,
        *,
        installment_id: UUID,
        recipient_type: str,
        recipient_email: str,
        event_type: str,
        sent_at: datetime,
        template_id: UUID | None = None,
        email_subject: str | None = None,
        message_id: str | None = None,
    ) -> NotificationLogEntry | None:
        """Insert a ledger row.

        Returns ``None`` when the unique key already exists, i.e. a concurrent
        dispatch recorded the same send first.
        """
        entry = NotificationLogEntry(
            installment_id=installment_id,
            recipient_type=recipient_type,
            recipient_email=recipient_email,
            event_type=event_type,
            sent_at=sent_at,
            template_id=template_id,
            email_subject=email_subject,
            message_id=message_id,
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(
                "Duplicate notification log for installment %s (%s, %s, %s)",
                installment_id,
                recipient_type,
                recipient_email,
                event_type,
            )
            return None
        self.db.refresh(entry)
        return entry

    def get_by_installment(self, installment_id: UUID) -> list[NotificationLogEntry]:
        return (
            self.db.query(NotificationLogEntry)
            .filter(NotificationLogEntry.installment_id == installment_id)
            .order_by(NotificationLogEntry.sent_at.asc())
            .all()
        )

    def count(self, event_type: str | None = None) -> int:
        query = self.db.query(func.count(NotificationLogEntry.id))
        if event_type is not None:
            query = query.filter(NotificationLogEntry.event_type == event_type)
        return query.scalar() or 0
