from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class PaymentPlanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentPlan(Base):
    __tablename__ = "payment_plans"
    __table_args__ = (Index("ix_payment_plans_agency_status", "agency_id", "status"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    agency_id = Column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    student_id = Column(
        UUIDType,
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    branch_id = Column(
        UUIDType,
        ForeignKey("branches.id", ondelete="SET NULL"),
        nullable=True,
    )
    status = Column(String(20), nullable=False, default=PaymentPlanStatus.ACTIVE.value)
    currency = Column(String(3), nullable=False, default="AUD")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
