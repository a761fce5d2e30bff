from sqlalchemy import Column, DateTime, ForeignKey, String, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class Student(Base):
    __tablename__ = "students"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    agency_id = Column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    # Staff member (sales agent) responsible for this student
    assigned_user_id = Column(
        UUIDType,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
