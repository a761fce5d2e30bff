"""create agencies, people, partner and installment tables

Revision ID: a0c1d2e3f4a5
Revises:
Create Date: 2026-10-05 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a0c1d2e3f4a5"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = False) -> list[sa.Column]:  # type: ignore[type-arg]
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("(CURRENT_TIMESTAMP)"),
                nullable=True,
            )
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "agencies",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "timezone", sa.String(length=64), nullable=False, server_default="Australia/Brisbane"
        ),
        sa.Column("overdue_cutoff_time", sa.Time(), nullable=False, server_default="17:00:00"),
        sa.Column("due_soon_threshold_days", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=50), nullable=True),
        sa.Column("payment_instructions", sa.Text(), nullable=True),
        *_timestamps(updated=True),
        sa.CheckConstraint(
            "due_soon_threshold_days BETWEEN 1 AND 30",
            name="ck_agencies_due_soon_days",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("agency_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column(
            "email_notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_agency_id"), "users", ["agency_id"], unique=False)

    op.create_table(
        "students",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("agency_id", sa.String(length=36), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("assigned_user_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["assigned_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_students_agency_id"), "students", ["agency_id"], unique=False)
    op.create_index(
        op.f("ix_students_assigned_user_id"), "students", ["assigned_user_id"], unique=False
    )

    op.create_table(
        "partner_organizations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("agency_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_partner_organizations_agency_id"),
        "partner_organizations",
        ["agency_id"],
        unique=False,
    )

    op.create_table(
        "branches",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("partner_organization_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["partner_organization_id"], ["partner_organizations.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_branches_partner_organization_id"),
        "branches",
        ["partner_organization_id"],
        unique=False,
    )

    op.create_table(
        "payment_plans",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("agency_id", sa.String(length=36), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("branch_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="AUD"),
        *_timestamps(updated=True),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_payment_plans_agency_id"), "payment_plans", ["agency_id"], unique=False)
    op.create_index(
        op.f("ix_payment_plans_student_id"), "payment_plans", ["student_id"], unique=False
    )
    op.create_index(
        "ix_payment_plans_agency_status", "payment_plans", ["agency_id", "status"], unique=False
    )

    op.create_table(
        "installments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("payment_plan_id", sa.String(length=36), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("paid_amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("last_notified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=True),
        sa.ForeignKeyConstraint(["payment_plan_id"], ["payment_plans.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_installments_plan_status_due",
        "installments",
        ["payment_plan_id", "status", "due_date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_installments_plan_status_due", table_name="installments")
    op.drop_table("installments")
    op.drop_index("ix_payment_plans_agency_status", table_name="payment_plans")
    op.drop_index(op.f("ix_payment_plans_student_id"), table_name="payment_plans")
    op.drop_index(op.f("ix_payment_plans_agency_id"), table_name="payment_plans")
    op.drop_table("payment_plans")
    op.drop_index(op.f("ix_branches_partner_organization_id"), table_name="branches")
    op.drop_table("branches")
    op.drop_index(op.f("ix_partner_organizations_agency_id"), table_name="partner_organizations")
    op.drop_table("partner_organizations")
    op.drop_index(op.f("ix_students_assigned_user_id"), table_name="students")
    op.drop_index(op.f("ix_students_agency_id"), table_name="students")
    op.drop_table("students")
    op.drop_index(op.f("ix_users_agency_id"), table_name="users")
    op.drop_table("users")
    op.drop_table("agencies")
