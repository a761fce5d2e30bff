"""Records installment status changes in the audit trail."""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from payplan.repositories.audit_log_repository import AuditLogRepository

STATUS_CHANGED = "status_changed"
SYSTEM_ACTOR = "system"


def status_diff(old_status: str, new_status: str) -> dict[str, Any]:
    return {"status": {"old": old_status, "new": new_status}}


class AuditService:
    def __init__(self, db: Session):
        self.repo = AuditLogRepository(db)

    def log_status_changes(
        self,
        resource_type: str,
        resource_ids: Iterable[UUID],
        agency_id: UUID,
        old_status: str,
        new_status: str,
        actor_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Stage one system-actor row per resource in the caller's transaction."""
        self.repo.stage_many(
            agency_id=agency_id,
            resource_type=resource_type,
            resource_ids=resource_ids,
            action=STATUS_CHANGED,
            changes=status_diff(old_status, new_status),
            actor_type=SYSTEM_ACTOR,
            actor_id=actor_id,
            metadata=metadata,
        )
