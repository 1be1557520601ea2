"""initial schema

Revision ID: 3a1c5e7b9d20
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3a1c5e7b9d20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "identity_member",
        sa.Column("member_code", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("password_hash", sa.String(length=200), nullable=False),
        sa.Column(
            "role",
            sa.Enum(
                "MEMBER",
                "SECRETARY",
                "JOINT_SECRETARY",
                "TREASURER",
                "PRESIDENT",
                "VICE_PRESIDENT",
                "FACULTY_COORDINATOR",
                "ALUMNI",
                name="memberrole",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("fiscal_year", sa.String(length=9), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_identity_member_member_code"), "identity_member", ["member_code"], unique=True
    )
    op.create_index(op.f("ix_identity_member_email"), "identity_member", ["email"], unique=True)
    op.create_index(op.f("ix_identity_member_role"), "identity_member", ["role"])
    op.create_index(op.f("ix_identity_member_fiscal_year"), "identity_member", ["fiscal_year"])

    op.create_table(
        "events_event",
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "category",
            sa.Enum(
                "COMMUNITY_SERVICE",
                "PROFESSIONAL_DEVELOPMENT",
                "INTERNATIONAL_SERVICE",
                "CLUB_SERVICE",
                "FUNDRAISING",
                "SOCIAL",
                "INSTALLATION",
                "OTHER",
                name="eventcategory",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("venue", sa.String(length=300), nullable=True),
        sa.Column("estimated_budget", sa.Numeric(12, 2), nullable=False),
        sa.Column("cancelled", sa.Boolean(), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), nullable=False),
        sa.Column("fiscal_year", sa.String(length=9), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by_id"], ["identity_member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_events_event_category"), "events_event", ["category"])
    op.create_index(op.f("ix_events_event_start_date"), "events_event", ["start_date"])
    op.create_index(op.f("ix_events_event_fiscal_year"), "events_event", ["fiscal_year"])
    op.create_index(op.f("ix_events_event_archived"), "events_event", ["archived"])

    op.create_table(
        "expenses_expense",
        sa.Column("member_id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "DONATION",
                "PERSONAL_CONTRIBUTION",
                "TRAVEL_EXPENSE",
                "ACCOMMODATION",
                "EVENT_MATERIAL",
                "FOOD_REFRESHMENTS",
                "MISCELLANEOUS",
                name="expensecategory",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column(
            "payment_mode",
            sa.Enum("UPI", "CASH", "BANK_TRANSFER", "CHEQUE", name="paymentmode", native_enum=False),
            nullable=False,
        ),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("bill_key", sa.String(length=1024), nullable=True),
        sa.Column("bill_original_name", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "APPROVED",
                "REJECTED",
                "REIMBURSED",
                "PAID",
                name="expensestatus",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("approved_by_id", sa.Uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by_id", sa.Uuid(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reimbursed_by_id", sa.Uuid(), nullable=True),
        sa.Column("reimbursed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reimbursement_reference", sa.String(length=200), nullable=True),
        sa.Column("fiscal_year", sa.String(length=9), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("amount >= 1", name="ck_expense_amount_min"),
        sa.ForeignKeyConstraint(["member_id"], ["identity_member.id"]),
        sa.ForeignKeyConstraint(["event_id"], ["events_event.id"]),
        sa.ForeignKeyConstraint(["approved_by_id"], ["identity_member.id"]),
        sa.ForeignKeyConstraint(["rejected_by_id"], ["identity_member.id"]),
        sa.ForeignKeyConstraint(["reimbursed_by_id"], ["identity_member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_expenses_expense_member_id"), "expenses_expense", ["member_id"])
    op.create_index(op.f("ix_expenses_expense_event_id"), "expenses_expense", ["event_id"])
    op.create_index(op.f("ix_expenses_expense_category"), "expenses_expense", ["category"])
    op.create_index(op.f("ix_expenses_expense_expense_date"), "expenses_expense", ["expense_date"])
    op.create_index(op.f("ix_expenses_expense_status"), "expenses_expense", ["status"])
    op.create_index(op.f("ix_expenses_expense_fiscal_year"), "expenses_expense", ["fiscal_year"])
    op.create_index(op.f("ix_expenses_expense_archived"), "expenses_expense", ["archived"])
    op.create_index("ix_expense_member_status", "expenses_expense", ["member_id", "status"])
    op.create_index("ix_expense_status_year", "expenses_expense", ["status", "fiscal_year"])

    op.create_table(
        "audit_event",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("target_type", sa.String(length=30), nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("change_set", sa.JSON(), nullable=False),
        sa.Column("fiscal_year", sa.String(length=9), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["identity_member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_event_actor_id"), "audit_event", ["actor_id"])
    op.create_index(op.f("ix_audit_event_action"), "audit_event", ["action"])
    op.create_index(op.f("ix_audit_event_fiscal_year"), "audit_event", ["fiscal_year"])
    op.create_index(op.f("ix_audit_event_occurred_at"), "audit_event", ["occurred_at"])

    op.create_table(
        "archive_fiscal_year",
        sa.Column("fiscal_year", sa.String(length=9), nullable=False),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "ARCHIVED", name="archivestatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_members", sa.Integer(), nullable=False),
        sa.Column("total_events", sa.Integer(), nullable=False),
        sa.Column("total_expenses", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_contributions", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_reimbursements", sa.Numeric(14, 2), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["closed_by_id"], ["identity_member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_archive_fiscal_year_fiscal_year"),
        "archive_fiscal_year",
        ["fiscal_year"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_archive_fiscal_year_fiscal_year"), table_name="archive_fiscal_year")
    op.drop_table("archive_fiscal_year")
    op.drop_index(op.f("ix_audit_event_occurred_at"), table_name="audit_event")
    op.drop_index(op.f("ix_audit_event_fiscal_year"), table_name="audit_event")
    op.drop_index(op.f("ix_audit_event_action"), table_name="audit_event")
    op.drop_index(op.f("ix_audit_event_actor_id"), table_name="audit_event")
    op.drop_table("audit_event")
    op.drop_index("ix_expense_status_year", table_name="expenses_expense")
    op.drop_index("ix_expense_member_status", table_name="expenses_expense")
    for column in (
        "archived",
        "fiscal_year",
        "status",
        "expense_date",
        "category",
        "event_id",
        "member_id",
    ):
        op.drop_index(op.f(f"ix_expenses_expense_{column}"), table_name="expenses_expense")
    op.drop_table("expenses_expense")
    for column in ("archived", "fiscal_year", "start_date", "category"):
        op.drop_index(op.f(f"ix_events_event_{column}"), table_name="events_event")
    op.drop_table("events_event")
    for column in ("fiscal_year", "role", "email", "member_code"):
        op.drop_index(op.f(f"ix_identity_member_{column}"), table_name="identity_member")
    op.drop_table("identity_member")
