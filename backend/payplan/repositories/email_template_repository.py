from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from payplan.models.email_template import EmailTemplate


class EmailTemplateRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        agency_id: UUID,
        template_type: str,
        subject: str,
        body_html: str,
        variables: dict[str, str] | None = None,
    ) -> EmailTemplate:
        template = EmailTemplate(
            agency_id=agency_id,
            template_type=template_type,
            subject=subject,
            body_html=body_html,
            variables=variables or {},
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        return template

    def get_by_id(self, template_id: UUID, agency_id: UUID | None = None) -> EmailTemplate | None:
        query = self.db.query(EmailTemplate).filter(EmailTemplate.id == template_id)
        if agency_id is not None:
            query = query.filter(EmailTemplate.agency_id == agency_id)
        return query.first()
