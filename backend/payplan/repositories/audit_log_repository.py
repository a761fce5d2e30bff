"""Audit trail storage.

Rows are append-only. Writers that change installment state stage their
audit rows with ``stage_many`` so both land in the same transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from payplan.models.audit_log import AuditLog


class AuditLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def stage_many(
        self,
        *,
        agency_id: UUID,
        resource_type: str,
        resource_ids: Iterable[UUID],
        action: str,
        changes: dict[str, Any],
        actor_type: str,
        actor_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> list[AuditLog]:
        """Add one row per resource without committing."""
        entries = [
            AuditLog(
                agency_id=agency_id,
                resource_type=resource_type,
                resource_id=resource_id,
                action=action,
                changes=dict(changes),
                actor_type=actor_type,
                actor_id=actor_id,
                metadata_=metadata,
            )
            for resource_id in resource_ids
        ]
        self.db.add_all(entries)
        return entries

    def get_by_resource(
        self,
        resource_type: str,
        resource_id: UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AuditLog]:
        """Newest first."""
        query = self.db.query(AuditLog).filter(
            AuditLog.resource_type == resource_type,
            AuditLog.resource_id == resource_id,
        )
        return query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
