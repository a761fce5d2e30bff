"""Rule-driven, deduplicated notification dispatch for installment events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from payplan.core.config import settings
from payplan.core.errors import RecipientResolutionError
from payplan.models.notification_rule import NotificationEventType, NotificationRule, RecipientType
from payplan.models.shared import utc_now
from payplan.models.user import User
from payplan.repositories.email_template_repository import EmailTemplateRepository
from payplan.repositories.installment_repository import InstallmentRepository
from payplan.repositories.notification_log_repository import NotificationLogRepository
from payplan.repositories.notification_rule_repository import NotificationRuleRepository
from payplan.repositories.user_repository import UserRepository
from payplan.services.email_service import EmailDelivery
from payplan.services.template_renderer import (
    TemplateContent,
    build_variables,
    default_template,
    render_content,
)

logger = logging.getLogger(__name__)

SENT = "sent"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass(frozen=True)
class Recipient:
    recipient_type: str
    email: str
    name: str | None = None


@dataclass
class InstallmentContext:
    installment: Any
    plan: Any
    agency: Any
    student: Any
    branch: Any = None
    partner: Any = None
    agent: Any = None


@dataclass
class RecipientResult:
    installment_id: UUID
    recipient_type: str
    status: str
    recipient_email: str | None = None
    message_id: str | None = None
    reason: str | None = None


@dataclass
class DispatchResult:
    event_type: str
    results: list[RecipientResult] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def sent(self) -> int:
        return self._count(SENT)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.results),
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
        }


@dataclass
class _PendingSend:
    context: InstallmentContext
    recipient: Recipient
    content: TemplateContent
    template_id: UUID | None


def resolve_recipients(
    recipient_type: str,
    context: InstallmentContext,
    staff: Sequence[User] = (),
) -> list[Recipient]:
    """Concrete addresses for one rule and one installment.

    Raises:
        RecipientResolutionError: If the rule targets a single recipient that
            has no deliverable address.
    """
    if recipient_type == RecipientType.TENANT_STAFF.value:
        recipients: dict[str, Recipient] = {}
        for user in staff:
            if user.email:
                recipients.setdefault(
                    str(user.email).lower(),
                    Recipient(recipient_type, str(user.email), str(user.name)),
                )
        return list(recipients.values())

    if recipient_type == RecipientType.STUDENT.value:
        student = context.student
        if student is None or not student.email:
            raise RecipientResolutionError("Student has no email address")
        return [Recipient(recipient_type, str(student.email), str(student.full_name))]

    if recipient_type == RecipientType.PARTNER_ORG.value:
        partner = context.partner
        if partner is None:
            raise RecipientResolutionError("Plan has no partner organization")
        if not partner.contact_email:
            raise RecipientResolutionError(f"Partner organization {partner.id} has no contact email")
        return [Recipient(recipient_type, str(partner.contact_email), str(partner.name))]

    if recipient_type == RecipientType.ASSIGNED_AGENT.value:
        agent = context.agent
        if agent is None:
            raise RecipientResolutionError("Student has no assigned agent")
        if not agent.email:
            raise RecipientResolutionError(f"Assigned agent {agent.id} has no email address")
        return [Recipient(recipient_type, str(agent.email), str(agent.name))]

    raise RecipientResolutionError(f"Unknown recipient type: {recipient_type}")


class NotificationDispatcher:
    """Sends each (installment, recipient type, address) an event at most once.

    Ledger lookups and writes run on the caller's session; sends fan out
    concurrently, bounded by ``concurrency``. A failed send is recorded in the
    result and never raised.
    """

    def __init__(
        self,
        db: Session,
        delivery: EmailDelivery,
        concurrency: int | None = None,
        app_url: str | None = None,
    ):
        self.db = db
        self.delivery = delivery
        self.concurrency = max(1, concurrency or settings.DISPATCH_CONCURRENCY)
        self.app_url = settings.APP_URL if app_url is None else app_url
        self.installment_repo = InstallmentRepository(db)
        self.rule_repo = NotificationRuleRepository(db)
        self.template_repo = EmailTemplateRepository(db)
        self.log_repo = NotificationLogRepository(db)
        self.user_repo = UserRepository(db)

    async def dispatch(
        self,
        installment_ids: Sequence[UUID],
        event_type: str | NotificationEventType,
    ) -> DispatchResult:
        event = NotificationEventType(event_type).value
        result = DispatchResult(event_type=event)
        unique_ids = list(dict.fromkeys(installment_ids))
        if not unique_ids:
            return result

        contexts = [
            InstallmentContext(*row) for row in self.installment_repo.get_with_context(unique_ids)
        ]
        found = {ctx.installment.id for ctx in contexts}
        for missing_id in unique_ids:
            if missing_id not in found:
                logger.warning("Installment %s not found, skipping notifications", missing_id)
                result.results.append(
                    RecipientResult(
                        installment_id=missing_id,
                        recipient_type="",
                        status=SKIPPED,
                        reason="installment not found",
                    )
                )

        by_agency: dict[UUID, list[InstallmentContext]] = {}
        for ctx in contexts:
            by_agency.setdefault(ctx.agency.id, []).append(ctx)

        pending: list[_PendingSend] = []
        for agency_id, agency_contexts in by_agency.items():
            pending.extend(self._plan_agency(agency_id, agency_contexts, event, result))

        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(
            *(self._send(item, event, semaphore) for item in pending),
            return_exceptions=True,
        )
        for item, outcome in zip(pending, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.error(
                    "Unexpected error sending %s notification for installment %s to %s",
                    event,
                    item.context.installment.id,
                    item.recipient.email,
                    exc_info=outcome,
                )
                result.results.append(_failed(item, f"unexpected error: {outcome}"))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.results.append(outcome)

        logger.info(
            "Dispatch of %s for %d installments: %s",
            event,
            len(unique_ids),
            result.summary(),
        )
        return result

    def _plan_agency(
        self,
        agency_id: UUID,
        contexts: list[InstallmentContext],
        event: str,
        result: DispatchResult,
    ) -> list[_PendingSend]:
        rules: list[NotificationRule] = self.rule_repo.get_enabled(agency_id, event)
        if not rules:
            logger.info("Agency %s has no enabled %s rules", agency_id, event)
            return []

        staff: list[User] = []
        if any(rule.recipient_type == RecipientType.TENANT_STAFF.value for rule in rules):
            staff = self.user_repo.get_notification_recipients(agency_id)

        templates: dict[UUID, TemplateContent | None] = {}
        pending: list[_PendingSend] = []
        for ctx in contexts:
            variables = build_variables(
                installment=ctx.installment,
                agency=ctx.agency,
                student=ctx.student,
                branch=ctx.branch,
                partner=ctx.partner,
                app_url=self.app_url,
            )
            for rule in rules:
                recipient_type = str(rule.recipient_type)
                try:
                    recipients = resolve_recipients(recipient_type, ctx, staff)
                except RecipientResolutionError as exc:
                    logger.warning(
                        "Installment %s: %s recipient skipped: %s",
                        ctx.installment.id,
                        recipient_type,
                        exc,
                    )
                    result.results.append(
                        RecipientResult(
                            installment_id=ctx.installment.id,
                            recipient_type=recipient_type,
                            status=SKIPPED,
                            reason=str(exc),
                        )
                    )
                    continue

                content = self._template_for(rule, agency_id, event, templates)
                for recipient in recipients:
                    if self.log_repo.exists(
                        installment_id=ctx.installment.id,
                        recipient_type=recipient.recipient_type,
                        recipient_email=recipient.email,
                        event_type=event,
                    ):
                        result.results.append(
                            RecipientResult(
                                installment_id=ctx.installment.id,
                                recipient_type=recipient.recipient_type,
                                recipient_email=recipient.email,
                                status=SKIPPED,
                                reason="already notified",
                            )
                        )
                        continue
                    pending.append(
                        _PendingSend(
                            context=ctx,
                            recipient=recipient,
                            content=render_content(content, variables),
                            template_id=rule.template_id,  # type: ignore[arg-type]
                        )
                    )
        return pending

    def _template_for(
        self,
        rule: NotificationRule,
        agency_id: UUID,
        event: str,
        cache: dict[UUID, TemplateContent | None],
    ) -> TemplateContent:
        template_id = rule.template_id
        if template_id is not None:
            if template_id not in cache:
                template = self.template_repo.get_by_id(template_id, agency_id)  # type: ignore[arg-type]
                cache[template_id] = (  # type: ignore[index]
                    TemplateContent(str(template.subject), str(template.body_html))
                    if template
                    else None
                )
            cached = cache[template_id]  # type: ignore[index]
            if cached is not None:
                return cached
            logger.warning("Template %s for rule %s not found, using default", template_id, rule.id)
        return default_template(event, str(rule.recipient_type))

    async def _send(
        self,
        item: _PendingSend,
        event: str,
        semaphore: asyncio.Semaphore,
    ) -> RecipientResult:
        installment_id: UUID = item.context.installment.id
        recipient = item.recipient
        async with semaphore:
            try:
                message_id = await self.delivery.send(
                    recipient.email,
                    item.content.subject,
                    item.content.body_html,
                    idempotency_key=f"{installment_id}:{recipient.recipient_type}:{recipient.email}:{event}",
                )
            except Exception as exc:
                logger.warning(
                    "Failed to send %s notification for installment %s to %s: %s",
                    event,
                    installment_id,
                    recipient.email,
                    exc,
                )
                return _failed(item, str(exc))

        sent_at = utc_now()
        try:
            entry = self.log_repo.record_sent(
                installment_id=installment_id,
                recipient_type=recipient.recipient_type,
                recipient_email=recipient.email,
                event_type=event,
                sent_at=sent_at,
                template_id=item.template_id,
                email_subject=item.content.subject,
                message_id=message_id,
            )
        except Exception as exc:
            self.db.rollback()
            logger.warning(
                "Sent %s notification for installment %s to %s (message %s) "
                "but could not record it: %s",
                event,
                installment_id,
                recipient.email,
                message_id,
                exc,
            )
            return _failed(item, f"sent but ledger write failed: {exc}", message_id)

        if entry is None:
            return RecipientResult(
                installment_id=installment_id,
                recipient_type=recipient.recipient_type,
                recipient_email=recipient.email,
                status=SKIPPED,
                reason="duplicate send recorded concurrently",
            )

        try:
            self.installment_repo.touch_last_notified(installment_id, sent_at)
        except Exception as exc:
            self.db.rollback()
            logger.warning("Could not stamp last_notified_at on installment %s: %s", installment_id, exc)

        logger.info(
            "Sent %s notification for installment %s to %s (%s)",
            event,
            installment_id,
            recipient.email,
            recipient.recipient_type,
        )
        return RecipientResult(
            installment_id=installment_id,
            recipient_type=recipient.recipient_type,
            recipient_email=recipient.email,
            status=SENT,
            message_id=message_id,
        )


def _failed(item: _PendingSend, reason: str, message_id: str | None = None) -> RecipientResult:
    return RecipientResult(
        installment_id=item.context.installment.id,
        recipient_type=item.recipient.recipient_type,
        recipient_email=item.recipient.email,
        status=FAILED,
        message_id=message_id,
        reason=reason,
    )
