"""Agency staff user model."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class User(Base):
    __tablename__ = "users"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    agency_id = Column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    # Staff opt in to operational emails (overdue alerts, reminders)
    email_notifications_enabled = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
