from uuid import UUID

from sqlalchemy.orm import Session

from payplan.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: UUID) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_notification_recipients(self, agency_id: UUID) -> list[User]:
        """Staff of the agency who opted into email notifications."""
        return (
            self.db.query(User)
            .filter(
                User.agency_id == agency_id,
                User.email_notifications_enabled.is_(True),
            )
            .order_by(User.email.asc())
            .all()
        )
