from uuid import UUID

from sqlalchemy.orm import Session

from payplan.models.agency import Agency


class AgencyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> list[Agency]:
        return self.db.query(Agency).order_by(Agency.created_at.asc(), Agency.id.asc()).all()

    def get_by_id(self, agency_id: UUID) -> Agency | None:
        return self.db.query(Agency).filter(Agency.id == agency_id).first()
