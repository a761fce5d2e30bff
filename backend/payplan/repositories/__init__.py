from payplan.repositories.agency_repository import AgencyRepository
from payplan.repositories.audit_log_repository import AuditLogRepository
from payplan.repositories.email_template_repository import EmailTemplateRepository
from payplan.repositories.installment_repository import InstallmentRepository
from payplan.repositories.job_run_repository import JobRunRepository
from payplan.repositories.notification_log_repository import NotificationLogRepository
from payplan.repositories.notification_rule_repository import NotificationRuleRepository
from payplan.repositories.user_repository import UserRepository

__all__ = [
    "AgencyRepository",
    "AuditLogRepository",
    "EmailTemplateRepository",
    "InstallmentRepository",
    "JobRunRepository",
    "NotificationLogRepository",
    "NotificationRuleRepository",
    "UserRepository",
]
