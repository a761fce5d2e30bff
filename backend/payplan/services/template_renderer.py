"""Email template rendering for installment notifications.

Templates use ``{{variable}}`` placeholders. Rendering never fails: placeholders
with no value in the variable map are left in the output as literal text.
Checking that a template only uses known variables is a separate, explicit
validation step (see ``validate_template`` and ``missing_variables``).
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from payplan.models.notification_rule import NotificationEventType, RecipientType

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

NOT_AVAILABLE = "N/A"

TEMPLATE_VARIABLES: dict[str, str] = {
    "student_name": "Student full name",
    "student_email": "Student email address",
    "student_phone": "Student phone number",
    "amount": "Installment amount, formatted with currency symbol",
    "due_date": "Installment due date",
    "college_name": "Partner college name",
    "branch_name": "College branch name",
    "agency_name": "Agency name",
    "agency_email": "Agency contact email",
    "agency_phone": "Agency contact phone",
    "payment_instructions": "Agency payment instructions",
    "view_link": "Link to the installment in the agency app",
}


@dataclass(frozen=True)
class TemplateContent:
    subject: str
    body_html: str


def render(template: str, variables: dict[str, Any], escape: bool = False) -> str:
    """Substitute ``{{name}}`` placeholders from ``variables``.

    Unknown placeholders pass through unchanged. A known variable whose value
    is ``None`` renders as an empty string. With ``escape=True`` values are
    HTML-escaped; the template text itself is trusted markup.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        if value is None:
            return ""
        return html.escape(str(value), quote=True) if escape else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def render_content(content: TemplateContent, variables: dict[str, Any]) -> TemplateContent:
    return TemplateContent(
        subject=render(content.subject, variables),
        body_html=render(content.body_html, variables, escape=True),
    )


def extract_placeholders(template: str) -> list[str]:
    """Placeholder names in order of first appearance."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def missing_variables(template: str, variables: dict[str, Any]) -> list[str]:
    """Placeholders used by ``template`` that have no entry in ``variables``."""
    return [name for name in extract_placeholders(template) if name not in variables]


def validate_template(
    subject: str,
    body_html: str,
    allowed: dict[str, str] | None = None,
) -> list[str]:
    """Return a list of problems with a template; empty when it is valid."""
    allowed = TEMPLATE_VARIABLES if allowed is None else allowed
    errors: list[str] = []
    if not subject.strip():
        errors.append("Subject must not be empty")
    if not body_html.strip():
        errors.append("Body must not be empty")

    for label, text in (("subject", subject), ("body", body_html)):
        if text.count("{{") != text.count("}}"):
            errors.append(f"Unbalanced placeholder braces in {label}")
        for name in extract_placeholders(text):
            if name not in allowed:
                errors.append(f"Unknown variable '{name}' in {label}")
    return errors


def format_amount(value: Any) -> str:
    """Format a monetary amount as ``$1,234.56``."""
    if value is None:
        return "$0.00"
    return f"${Decimal(str(value)):,.2f}"


def format_due_date(value: date | None) -> str:
    """Format a date as ``January 15, 2025``."""
    if value is None:
        return ""
    return f"{value:%B} {value.day}, {value.year}"


def build_variables(
    *,
    installment: Any,
    agency: Any,
    student: Any,
    branch: Any = None,
    partner: Any = None,
    app_url: str = "",
) -> dict[str, str]:
    """Variable map for one installment, matching ``TEMPLATE_VARIABLES``."""
    return {
        "student_name": str(student.full_name or ""),
        "student_email": str(student.email or NOT_AVAILABLE),
        "student_phone": str(student.phone or NOT_AVAILABLE),
        "amount": format_amount(installment.amount),
        "due_date": format_due_date(installment.due_date),
        "college_name": str(partner.name) if partner is not None else NOT_AVAILABLE,
        "branch_name": str(branch.name) if branch is not None else NOT_AVAILABLE,
        "agency_name": str(agency.name or NOT_AVAILABLE),
        "agency_email": str(agency.contact_email or NOT_AVAILABLE),
        "agency_phone": str(agency.contact_phone or NOT_AVAILABLE),
        "payment_instructions": str(agency.payment_instructions or ""),
        "view_link": f"{app_url.rstrip('/')}/payments/{installment.id}",
    }


_DETAILS_HTML = (
    "<p><strong>Student:</strong> {{student_name}}</p>"
    "<p><strong>Amount:</strong> {{amount}}</p>"
    "<p><strong>Due Date:</strong> {{due_date}}</p>"
    "<p><strong>College:</strong> {{college_name}}</p>"
)
_INSTRUCTIONS_HTML = "<p><strong>Payment Instructions:</strong><br/>{{payment_instructions}}</p>"
_LINK_HTML = '<p><a href="{{view_link}}">View Details</a></p>'

_OVERDUE_STAFF = TemplateContent(
    subject="Payment Reminder: {{student_name}} - {{amount}} overdue",
    body_html=(
        "<p>This is a reminder that a payment installment is overdue.</p>"
        + _DETAILS_HTML
        + _LINK_HTML
    ),
)

DEFAULT_TEMPLATES: dict[tuple[str, str], TemplateContent] = {
    (NotificationEventType.OVERDUE.value, RecipientType.TENANT_STAFF.value): _OVERDUE_STAFF,
    (NotificationEventType.OVERDUE.value, RecipientType.ASSIGNED_AGENT.value): _OVERDUE_STAFF,
    (NotificationEventType.OVERDUE.value, RecipientType.STUDENT.value): TemplateContent(
        subject="Payment overdue: {{amount}} was due on {{due_date}}",
        body_html=(
            "<p>Dear {{student_name}},</p>"
            "<p>Your installment of {{amount}} due on {{due_date}} has not been received.</p>"
            + _INSTRUCTIONS_HTML
            + "<p>Please contact {{agency_name}} at {{agency_email}} or {{agency_phone}} "
            "if you have already paid.</p>"
        ),
    ),
    (NotificationEventType.OVERDUE.value, RecipientType.PARTNER_ORG.value): TemplateContent(
        subject="Overdue installment for {{student_name}}",
        body_html=(
            "<p>An installment for a student at {{college_name}} ({{branch_name}}) is overdue.</p>"
            + _DETAILS_HTML
            + "<p>Contact {{agency_name}} at {{agency_email}} for details.</p>"
        ),
    ),
    (NotificationEventType.DUE_SOON.value, RecipientType.STUDENT.value): TemplateContent(
        subject="Payment Reminder: {{amount}} due on {{due_date}}",
        body_html=(
            "<p>Dear {{student_name}},</p>"
            "<p>This is a friendly reminder that your installment of {{amount}} "
            "is due on {{due_date}}.</p>"
            + _INSTRUCTIONS_HTML
            + "<p>Questions? Contact {{agency_name}} at {{agency_email}} or {{agency_phone}}.</p>"
        ),
    ),
}

_GENERIC_TEMPLATE = TemplateContent(
    subject="Payment update: {{student_name}} - {{amount}} due {{due_date}}",
    body_html=_DETAILS_HTML + _LINK_HTML,
)


def default_template(event_type: str, recipient_type: str) -> TemplateContent:
    return DEFAULT_TEMPLATES.get((event_type, recipient_type), _GENERIC_TEMPLATE)
