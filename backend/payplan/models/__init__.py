from payplan.models.agency import Agency
from payplan.models.audit_log import AuditLog
from payplan.models.email_template import EmailTemplate
from payplan.models.installment import Installment, InstallmentStatus
from payplan.models.job_run import JobRun, JobRunStatus
from payplan.models.notification_log import NotificationLogEntry
from payplan.models.notification_rule import NotificationEventType, NotificationRule, RecipientType
from payplan.models.partner_organization import Branch, PartnerOrganization
from payplan.models.payment_plan import PaymentPlan, PaymentPlanStatus
from payplan.models.student import Student
from payplan.models.user import User

__all__ = [
    "Agency",
    "AuditLog",
    "Branch",
    "EmailTemplate",
    "Installment",
    "InstallmentStatus",
    "JobRun",
    "JobRunStatus",
    "NotificationEventType",
    "NotificationLogEntry",
    "NotificationRule",
    "PartnerOrganization",
    "PaymentPlan",
    "PaymentPlanStatus",
    "RecipientType",
    "Student",
    "User",
]
