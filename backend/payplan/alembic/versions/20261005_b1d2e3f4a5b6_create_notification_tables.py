"""create email templates, notification rules and notification log

Revision ID: b1d2e3f4a5b6
Revises: a0c1d2e3f4a5
Create Date: 2026-10-05 09:30:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "b1d2e3f4a5b6"
down_revision = "a0c1d2e3f4a5"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "email_templates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("agency_id", sa.String(length=36), nullable=False),
        sa.Column("template_type", sa.String(length=50), nullable=False),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("body_html", sa.Text(), nullable=False),
        sa.Column("variables", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_email_templates_agency_id"), "email_templates", ["agency_id"], unique=False
    )
    op.create_index(
        "ix_email_templates_agency_type",
        "email_templates",
        ["agency_id", "template_type"],
        unique=False,
    )

    op.create_table(
        "notification_rules",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("agency_id", sa.String(length=36), nullable=False),
        sa.Column("recipient_type", sa.String(length=30), nullable=False),
        sa.Column("event_type", sa.String(length=30), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("template_id", sa.String(length=36), nullable=True),
        sa.Column("trigger_config", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["template_id"], ["email_templates.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "agency_id",
            "recipient_type",
            "event_type",
            name="uq_notification_rules_agency_recipient_event",
        ),
    )
    op.create_index(
        op.f("ix_notification_rules_agency_id"), "notification_rules", ["agency_id"], unique=False
    )

    op.create_table(
        "notification_log",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("installment_id", sa.String(length=36), nullable=False),
        sa.Column("recipient_type", sa.String(length=30), nullable=False),
        sa.Column("recipient_email", sa.String(length=255), nullable=False),
        sa.Column("event_type", sa.String(length=30), nullable=False),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column("template_id", sa.String(length=36), nullable=True),
        sa.Column("email_subject", sa.String(length=500), nullable=True),
        sa.Column("message_id", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["installment_id"], ["installments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["template_id"], ["email_templates.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "installment_id",
            "recipient_type",
            "recipient_email",
            "event_type",
            name="uq_notification_log_installment_recipient_event",
        ),
    )
    op.create_index(
        op.f("ix_notification_log_installment_id"),
        "notification_log",
        ["installment_id"],
        unique=False,
    )
    op.create_index("ix_notification_log_sent_at", "notification_log", ["sent_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_notification_log_sent_at", table_name="notification_log")
    op.drop_index(op.f("ix_notification_log_installment_id"), table_name="notification_log")
    op.drop_table("notification_log")
    op.drop_index(op.f("ix_notification_rules_agency_id"), table_name="notification_rules")
    op.drop_table("notification_rules")
    op.drop_index("ix_email_templates_agency_type", table_name="email_templates")
    op.drop_index(op.f("ix_email_templates_agency_id"), table_name="email_templates")
    op.drop_table("email_templates")
