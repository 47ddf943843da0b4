"""Initial schema: users, academic years, grades, sections, parents, students, teachers, audit logs.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "academic_years",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("start_date", sa.DateTime, nullable=False),
        sa.Column("end_date", sa.DateTime, nullable=False),
        sa.Column("is_current", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_table(
        "grades",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "sections",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(10), nullable=False),
        sa.Column("grade_id", sa.String(36), sa.ForeignKey("grades.id"), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "parents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(15), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "students",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("roll_number", sa.String(20), nullable=False, unique=True),
        sa.Column("admission_number", sa.String(30), nullable=True),
        sa.Column("gender", sa.String(10), nullable=False),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(15), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("date_of_birth", sa.DateTime, nullable=True),
        sa.Column("admission_date", sa.DateTime, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("photo", sa.String(255), nullable=True),
        sa.Column("emergency_contact", sa.String(100), nullable=True),
        sa.Column("emergency_phone", sa.String(15), nullable=True),
        sa.Column("relationship", sa.String(50), nullable=True),
        sa.Column("medical_conditions", sa.String(1000), nullable=True),
        sa.Column("grade_id", sa.String(36), sa.ForeignKey("grades.id"), nullable=False),
        sa.Column("section_id", sa.String(36), sa.ForeignKey("sections.id"), nullable=False),
        sa.Column("guardian_id", sa.String(36), sa.ForeignKey("parents.id"), nullable=True),
        sa.Column("academic_year_id", sa.String(36), sa.ForeignKey("academic_years.id"), nullable=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_students_grade_section", "students", ["grade_id", "section_id"])
    op.create_table(
        "teachers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(15), nullable=True),
        sa.Column("subject", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("photo", sa.String(255), nullable=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("entity", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("summary", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity", "entity_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("teachers")
    op.drop_index("ix_students_grade_section", table_name="students")
    op.drop_table("students")
    op.drop_table("parents")
    op.drop_table("sections")
    op.drop_table("grades")
    op.drop_table("academic_years")
    op.drop_table("users")
