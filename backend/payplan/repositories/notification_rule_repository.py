from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from payplan.models.notification_rule import NotificationRule


class NotificationRuleRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        agency_id: UUID,
        recipient_type: str,
        event_type: str,
        is_enabled: bool = True,
        template_id: UUID | None = None,
        trigger_config: dict[str, Any] | None = None,
    ) -> NotificationRule:
        rule = NotificationRule(
            agency_id=agency_id,
            recipient_type=recipient_type,
            event_type=event_type,
            is_enabled=is_enabled,
            template_id=template_id,
            trigger_config=trigger_config or {},
        )
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def get_enabled(self, agency_id: UUID, event_type: str) -> list[NotificationRule]:
        return (
            self.db.query(NotificationRule)
            .filter(
                NotificationRule.agency_id == agency_id,
                NotificationRule.event_type == event_type,
                NotificationRule.is_enabled.is_(True),
            )
            .order_by(NotificationRule.recipient_type.asc())
            .all()
        )
