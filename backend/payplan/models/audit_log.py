"""Append-only audit rows for installment state changes."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class AuditLog(Base):
    """One change to one resource; ``changes`` holds old/new values per field."""

    __tablename__ = "audit_logs"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    agency_id = Column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    resource_type = Column(String(50), nullable=False, index=True)
    resource_id = Column(UUIDType, nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    changes = Column(JSON, nullable=False, default=dict)
    actor_type = Column(String(50), nullable=False)
    actor_id = Column(String(255), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
