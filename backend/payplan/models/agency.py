"""Agency (tenant) model with status-automation settings."""

from datetime import time

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text, Time, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid

DEFAULT_TIMEZONE = "Australia/Brisbane"
DEFAULT_CUTOFF_TIME = time(17, 0)
DEFAULT_DUE_SOON_DAYS = 4


class Agency(Base):
    __tablename__ = "agencies"
    __table_args__ = (
        CheckConstraint(
            "due_soon_threshold_days BETWEEN 1 AND 30",
            name="ck_agencies_due_soon_days",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)

    # IANA zone name; "today" and the cutoff are evaluated in this zone
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    # Local time of day after which installments due today become overdue
    overdue_cutoff_time = Column(Time, nullable=False, default=DEFAULT_CUTOFF_TIME)
    due_soon_threshold_days = Column(Integer, nullable=False, default=DEFAULT_DUE_SOON_DAYS)

    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    payment_instructions = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
