"""Installment repository: status-transition queries and dispatch context loading."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from payplan.models.agency import Agency
from payplan.models.installment import Installment, InstallmentStatus
from payplan.models.partner_organization import Branch, PartnerOrganization
from payplan.models.payment_plan import PaymentPlan, PaymentPlanStatus
from payplan.models.shared import utc_now
from payplan.models.student import Student
from payplan.models.user import User


class InstallmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, installment_id: UUID) -> Installment | None:
        return self.db.query(Installment).filter(Installment.id == installment_id).first()

    def _pending_in_active_plans(self, agency_id: UUID) -> Any:
        return (
            self.db.query(Installment)
            .join(PaymentPlan, Installment.payment_plan_id == PaymentPlan.id)
            .filter(
                PaymentPlan.agency_id == agency_id,
                PaymentPlan.status == PaymentPlanStatus.ACTIVE.value,
                Installment.status == InstallmentStatus.PENDING.value,
            )
        )

    def find_overdue_candidates(self, agency_id: UUID, due_on_or_before: date) -> list[UUID]:
        """IDs of pending installments of active plans due on or before the given date."""
        rows = (
            self._pending_in_active_plans(agency_id)
            .filter(Installment.due_date <= due_on_or_before)
            .with_entities(Installment.id)
            .order_by(Installment.due_date.asc(), Installment.id.asc())
            .all()
        )
        return [row.id for row in rows]

    def mark_overdue(
        self, installment_ids: Sequence[UUID], now: datetime | None = None
    ) -> list[UUID]:
        """Set status to overdue in one statement, without committing.

        The pending predicate is repeated so rows changed since selection are
        left alone. Returns the IDs actually updated, in input order.
        """
        if not installment_ids:
            return []
        rows = self.db.execute(
            update(Installment)
            .where(
                Installment.id.in_(list(installment_ids)),
                Installment.status == InstallmentStatus.PENDING.value,
            )
            .values(status=InstallmentStatus.OVERDUE.value, updated_at=now or utc_now())
            .returning(Installment.id)
            .execution_options(synchronize_session=False)
        ).all()
        changed = {row.id for row in rows}
        return [installment_id for installment_id in installment_ids if installment_id in changed]

    def find_due_between(self, agency_id: UUID, start: date, end: date) -> list[UUID]:
        """IDs of pending installments of active plans due within [start, end]."""
        rows = (
            self._pending_in_active_plans(agency_id)
            .filter(Installment.due_date >= start, Installment.due_date <= end)
            .with_entities(Installment.id)
            .order_by(Installment.due_date.asc(), Installment.id.asc())
            .all()
        )
        return [row.id for row in rows]

    def get_with_context(self, installment_ids: Sequence[UUID]) -> list[tuple[Any, ...]]:
        """Load installments with plan, agency, student, branch, partner and agent.

        Returns rows of ``(installment, plan, agency, student, branch, partner, agent)``;
        the last three are ``None`` when not configured.
        """
        if not installment_ids:
            return []
        rows = (
            self.db.query(
                Installment,
                PaymentPlan,
                Agency,
                Student,
                Branch,
                PartnerOrganization,
                User,
            )
            .join(PaymentPlan, Installment.payment_plan_id == PaymentPlan.id)
            .join(Agency, PaymentPlan.agency_id == Agency.id)
            .join(Student, PaymentPlan.student_id == Student.id)
            .outerjoin(Branch, PaymentPlan.branch_id == Branch.id)
            .outerjoin(
                PartnerOrganization,
                Branch.partner_organization_id == PartnerOrganization.id,
            )
            .outerjoin(User, Student.assigned_user_id == User.id)
            .filter(Installment.id.in_(list(installment_ids)))
            .order_by(Installment.due_date.asc(), Installment.id.asc())
            .all()
        )
        return [tuple(row) for row in rows]

    def touch_last_notified(self, installment_id: UUID, when: datetime) -> None:
        self.db.execute(
            update(Installment)
            .where(Installment.id == installment_id)
            .values(last_notified_at=when)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
