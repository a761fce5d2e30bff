"""Status transition engine: pending installments become overdue.

"Today" and the daily cutoff are evaluated in each agency's own timezone.
An installment qualifies when its plan is active, it is still pending and
either its due date is before the local date, or it is due today and the
local time of day has reached the agency cutoff.

Each agency is processed in its own transaction so a failure leaves other
agencies' results intact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from payplan.core.errors import DataIntegrityError, TransientInfrastructureError
from payplan.models.agency import Agency
from payplan.models.installment import InstallmentStatus
from payplan.models.shared import as_utc, utc_now
from payplan.repositories.agency_repository import AgencyRepository
from payplan.repositories.installment_repository import InstallmentRepository
from payplan.services.audit_service import AuditService

logger = logging.getLogger(__name__)

PENDING_TO_OVERDUE = "pending_to_overdue"
MIN_DUE_SOON_DAYS = 1
MAX_DUE_SOON_DAYS = 30


def resolve_timezone(name: Any, agency_id: UUID | None = None) -> ZoneInfo:
    """Resolve an IANA zone name, raising ``DataIntegrityError`` when invalid."""
    if not isinstance(name, str) or not name:
        raise DataIntegrityError(f"Missing timezone: {name!r}", agency_id=agency_id)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise DataIntegrityError(f"Invalid timezone: {name!r}", agency_id=agency_id) from exc


def resolve_cutoff(value: Any, agency_id: UUID | None = None) -> time:
    """Accept a ``time`` or an ``HH:MM[:SS]`` string."""
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value)
        except ValueError:
            pass
    raise DataIntegrityError(f"Invalid overdue cutoff time: {value!r}", agency_id=agency_id)


def local_now(now: datetime, tz: ZoneInfo) -> datetime:
    return as_utc(now).astimezone(tz)


def overdue_threshold_date(local: datetime, cutoff: time) -> date:
    """Latest due date that counts as overdue at ``local``.

    Once the cutoff has been reached, installments due today qualify;
    before that, only those due yesterday or earlier.
    """
    today = local.date()
    if local.time() >= cutoff:
        return today
    return today - timedelta(days=1)


def is_overdue(due_date: date, local: datetime, cutoff: time) -> bool:
    return due_date <= overdue_threshold_date(local, cutoff)


def due_soon_window(local: datetime, threshold_days: int) -> tuple[date, date]:
    """Inclusive local-date window ``[today + 1, today + threshold_days]``."""
    today = local.date()
    return today + timedelta(days=1), today + timedelta(days=threshold_days)


@dataclass
class TenantTransitionResult:
    agency_id: UUID
    updated_count: int = 0
    transitions: dict[str, int] = field(default_factory=dict)
    newly_overdue_ids: list[UUID] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class TenantDueSoonResult:
    agency_id: UUID
    installment_ids: list[UUID] = field(default_factory=list)
    window_start: date | None = None
    window_end: date | None = None
    error: str | None = None


class StatusTransitionService:
    def __init__(self, db: Session):
        self.db = db
        self.agency_repo = AgencyRepository(db)
        self.installment_repo = InstallmentRepository(db)
        self.audit_service = AuditService(db)

    def _load_agencies(self) -> list[Agency]:
        try:
            return self.agency_repo.get_all()
        except (OperationalError, DisconnectionError) as exc:
            self.db.rollback()
            raise TransientInfrastructureError(f"Failed to load agencies: {exc}") from exc

    def transition_overdue(
        self,
        now: datetime | None = None,
        completed: dict[UUID, TenantTransitionResult] | None = None,
    ) -> list[TenantTransitionResult]:
        """Transition qualifying installments of every agency.

        Args:
            now: Evaluation instant; defaults to the current UTC time.
            completed: Results of agencies already processed by an earlier
                attempt. Those agencies are not processed again and new
                results are added to the mapping, so a retried run keeps the
                IDs transitioned before the failure.

        Raises:
            TransientInfrastructureError: When the database connection fails.
                Agencies committed before the failure stay committed.
        """
        now = now or utc_now()
        completed = {} if completed is None else completed
        agencies = self._load_agencies()

        for agency in agencies:
            if agency.id in completed:
                continue
            completed[agency.id] = self._transition_agency(agency, now)  # type: ignore[index]

        return [completed[agency.id] for agency in agencies if agency.id in completed]

    def _transition_agency(self, agency: Agency, now: datetime) -> TenantTransitionResult:
        agency_id: UUID = agency.id  # type: ignore[assignment]
        try:
            tz = resolve_timezone(agency.timezone, agency_id)
            cutoff = resolve_cutoff(agency.overdue_cutoff_time, agency_id)
            threshold = overdue_threshold_date(local_now(now, tz), cutoff)

            candidate_ids = self.installment_repo.find_overdue_candidates(agency_id, threshold)
            changed_ids = self.installment_repo.mark_overdue(candidate_ids, now=now)
            if len(changed_ids) != len(candidate_ids):
                logger.warning(
                    "Agency %s: %d candidates selected but %d updated",
                    agency_id,
                    len(candidate_ids),
                    len(changed_ids),
                )
            self.audit_service.log_status_changes(
                resource_type="installment",
                resource_ids=changed_ids,
                agency_id=agency_id,
                old_status=InstallmentStatus.PENDING.value,
                new_status=InstallmentStatus.OVERDUE.value,
                metadata={"reason": "automated_status_update", "threshold_date": str(threshold)},
            )
            self.db.commit()
        except DataIntegrityError as exc:
            self.db.rollback()
            logger.error("Agency %s skipped: %s", agency_id, exc)
            return TenantTransitionResult(agency_id=agency_id, error=str(exc))
        except IntegrityError as exc:
            self.db.rollback()
            logger.error("Agency %s batch rolled back: %s", agency_id, exc)
            return TenantTransitionResult(agency_id=agency_id, error=f"Integrity error: {exc.orig}")
        except (OperationalError, DisconnectionError) as exc:
            self.db.rollback()
            raise TransientInfrastructureError(
                f"Database error while updating agency {agency_id}: {exc}"
            ) from exc

        updated = len(changed_ids)
        if updated:
            logger.info("Agency %s: %d installments marked overdue", agency_id, updated)
        return TenantTransitionResult(
            agency_id=agency_id,
            updated_count=updated,
            transitions={PENDING_TO_OVERDUE: updated},
            newly_overdue_ids=changed_ids,
        )

    def find_due_soon(self, now: datetime | None = None) -> list[TenantDueSoonResult]:
        """Pending installments of active plans falling due within each agency's window."""
        now = now or utc_now()
        results: list[TenantDueSoonResult] = []
        for agency in self._load_agencies():
            agency_id: UUID = agency.id  # type: ignore[assignment]
            try:
                tz = resolve_timezone(agency.timezone, agency_id)
                days = int(agency.due_soon_threshold_days)  # type: ignore[arg-type]
                if not MIN_DUE_SOON_DAYS <= days <= MAX_DUE_SOON_DAYS:
                    raise DataIntegrityError(
                        f"due_soon_threshold_days must be between {MIN_DUE_SOON_DAYS} "
                        f"and {MAX_DUE_SOON_DAYS}, got {days}",
                        agency_id=agency_id,
                    )
                start, end = due_soon_window(local_now(now, tz), days)
                ids = self.installment_repo.find_due_between(agency_id, start, end)
            except DataIntegrityError as exc:
                logger.error("Agency %s skipped: %s", agency_id, exc)
                results.append(TenantDueSoonResult(agency_id=agency_id, error=str(exc)))
                continue
            except (OperationalError, DisconnectionError) as exc:
                self.db.rollback()
                raise TransientInfrastructureError(
                    f"Database error while scanning agency {agency_id}: {exc}"
                ) from exc
            results.append(
                TenantDueSoonResult(
                    agency_id=agency_id,
                    installment_ids=ids,
                    window_start=start,
                    window_end=end,
                )
            )
        return results
