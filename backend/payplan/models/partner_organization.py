"""Partner organizations (colleges) and their branches."""

from sqlalchemy import Column, DateTime, ForeignKey, String, func

from payplan.core.database import Base
from payplan.models.shared import UUIDType, generate_uuid


class PartnerOrganization(Base):
    __tablename__ = "partner_organizations"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    agency_id = Column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Branch(Base):
    __tablename__ = "branches"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    partner_organization_id = Column(
        UUIDType,
        ForeignKey("partner_organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
