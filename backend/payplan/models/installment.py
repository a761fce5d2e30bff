from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Numeric, String, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class InstallmentStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"
    CANCELLED = "cancelled"


class Installment(Base):
    __tablename__ = "installments"
    __table_args__ = (
        Index("ix_installments_plan_status_due", "payment_plan_id", "status", "due_date"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    payment_plan_id = Column(
        UUIDType,
        ForeignKey("payment_plans.id", ondelete="RESTRICT"),
        nullable=False,
    )
    # Calendar date in the agency's timezone
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=InstallmentStatus.PENDING.value)

    paid_date = Column(Date, nullable=True)
    paid_amount = Column(Numeric(12, 2), nullable=True)
    last_notified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
