"""Initial schema: schools, branches and the tenant-scoped school tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _school_id() -> sa.Column:
    return sa.Column(
        "school_id", sa.String(36),
        sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False,
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


# Creation order; dropped in reverse.
_SCOPED_TABLES = [
    "branches",
    "users",
    "learners",
    "classes",
    "class_enrollments",
    "attendance",
    "formative_assessments",
    "summative_tests",
    "summative_results",
    "fee_structures",
    "fee_invoices",
    "fee_payments",
]


def upgrade() -> None:
    op.create_table(
        "schools",
        _id(),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("subdomain", sa.String(128), unique=True, nullable=True),
        sa.Column("county", sa.String(128), nullable=True),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )

    op.create_table(
        "branches",
        _id(),
        _school_id(),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )

    op.create_table(
        "users",
        _id(),
        _school_id(),
        sa.Column("email", sa.String(256), nullable=False, unique=True),
        sa.Column("first_name", sa.String(128), nullable=False),
        sa.Column("last_name", sa.String(128), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("branch_id", sa.String(36), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
        sa.Column("staff_id", sa.String(64), nullable=True),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )

    op.create_table(
        "learners",
        _id(),
        _school_id(),
        sa.Column("admission_number", sa.String(64), nullable=False),
        sa.Column("first_name", sa.String(128), nullable=False),
        sa.Column("last_name", sa.String(128), nullable=False),
        sa.Column("gender", sa.String(16), nullable=True),
        sa.Column("date_of_birth", sa.Date, nullable=True),
        sa.Column("grade", sa.String(32), nullable=False),
        sa.Column("stream", sa.String(32), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="ACTIVE"),
        sa.Column("branch_id", sa.String(36), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
        _created_at("updated_at"),
        sa.UniqueConstraint("school_id", "admission_number", name="uq_learner_admission"),
    )
    op.create_index("ix_learner_school_grade", "learners", ["school_id", "grade"])

    op.create_table(
        "classes",
        _id(),
        _school_id(),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("grade", sa.String(32), nullable=False),
        sa.Column("stream", sa.String(32), nullable=True),
        sa.Column("academic_year", sa.Integer, nullable=False),
        sa.Column("teacher_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("branch_id", sa.String(36), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
    )

    op.create_table(
        "class_enrollments",
        _id(),
        _school_id(),
        sa.Column("class_id", sa.String(36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("learner_id", sa.String(36), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
        _created_at("enrolled_at"),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("class_id", "learner_id", name="uq_enrollment"),
    )

    op.create_table(
        "attendance",
        _id(),
        _school_id(),
        sa.Column("learner_id", sa.String(36), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("class_id", sa.String(36), sa.ForeignKey("classes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("attendance_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("remarks", sa.Text, nullable=True),
        sa.Column("marked_by", sa.String(36), nullable=True),
        _created_at(),
        sa.UniqueConstraint("learner_id", "attendance_date", name="uq_attendance_learner_date"),
    )
    op.create_index("ix_attendance_school_date", "attendance", ["school_id", "attendance_date"])

    op.create_table(
        "formative_assessments",
        _id(),
        _school_id(),
        sa.Column("learner_id", sa.String(36), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("learning_area", sa.String(128), nullable=False),
        sa.Column("term", sa.String(16), nullable=False),
        sa.Column("academic_year", sa.Integer, nullable=False),
        sa.Column("rating", sa.String(8), nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("teacher_id", sa.String(36), nullable=True),
        _created_at(),
    )

    op.create_table(
        "summative_tests",
        _id(),
        _school_id(),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("learning_area", sa.String(128), nullable=False),
        sa.Column("grade", sa.String(32), nullable=False),
        sa.Column("term", sa.String(16), nullable=False),
        sa.Column("academic_year", sa.Integer, nullable=False),
        sa.Column("total_marks", sa.Integer, nullable=False, server_default="100"),
        _created_at(),
    )

    op.create_table(
        "summative_results",
        _id(),
        _school_id(),
        sa.Column("test_id", sa.String(36), sa.ForeignKey("summative_tests.id", ondelete="CASCADE"), nullable=False),
        sa.Column("learner_id", sa.String(36), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("marks_obtained", sa.Numeric(6, 2), nullable=False),
        sa.Column("grade", sa.String(8), nullable=True),
        sa.Column("remarks", sa.Text, nullable=True),
        sa.UniqueConstraint("test_id", "learner_id", name="uq_result_test_learner"),
    )

    op.create_table(
        "fee_structures",
        _id(),
        _school_id(),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("grade", sa.String(32), nullable=True),
        sa.Column("term", sa.String(16), nullable=False),
        sa.Column("academic_year", sa.Integer, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "fee_invoices",
        _id(),
        _school_id(),
        sa.Column("invoice_number", sa.String(64), nullable=False),
        sa.Column("learner_id", sa.String(36), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("fee_structure_id", sa.String(36), sa.ForeignKey("fee_structures.id", ondelete="SET NULL"), nullable=True),
        sa.Column("term", sa.String(16), nullable=False),
        sa.Column("academic_year", sa.Integer, nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("due_date", sa.Date, nullable=True),
        _created_at(),
    )

    op.create_table(
        "fee_payments",
        _id(),
        _school_id(),
        sa.Column("invoice_id", sa.String(36), sa.ForeignKey("fee_invoices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("method", sa.String(32), nullable=False, server_default="CASH"),
        sa.Column("reference", sa.String(128), nullable=True),
        sa.Column("received_by", sa.String(36), nullable=True),
        _created_at("paid_at"),
    )

    # Every tenant-scoped table is filtered by school_id on each query.
    for table in _SCOPED_TABLES:
        op.create_index(f"ix_{table}_school_id", table, ["school_id"])


def downgrade() -> None:
    for table in reversed(_SCOPED_TABLES):
        op.drop_index(f"ix_{table}_school_id", table_name=table)
    op.drop_index("ix_attendance_school_date", table_name="attendance")
    op.drop_index("ix_learner_school_grade", table_name="learners")
    for table in reversed(_SCOPED_TABLES):
        op.drop_table(table)
    op.drop_table("schools")
