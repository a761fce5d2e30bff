from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class EmailTemplate(Base):
    __tablename__ = "email_templates"
    __table_args__ = (Index("ix_email_templates_agency_type", "agency_id", "template_type"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    agency_id = Column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    template_type = Column(String(50), nullable=False)  # e.g. "student_overdue"
    subject = Column(String(500), nullable=False)
    body_html = Column(Text, nullable=False)
    # Documented placeholders: {"student_name": "Student full name", ...}
    variables = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
