"""Relational schema of the school records and the relations stores can eager-load or connect."""

from dataclasses import dataclass
from typing import Literal

import sqlalchemy as sa

metadata = sa.MetaData()


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime, nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime, nullable=True)


users = sa.Table(
    "users",
    metadata,
    _id(),
    sa.Column("email", sa.String(100), nullable=False),
    sa.Column("name", sa.String(120), nullable=False),
    sa.Column("role", sa.String(20), nullable=False),
    _created_at(),
    _updated_at(),
)

academic_years = sa.Table(
    "academic_years",
    metadata,
    _id(),
    sa.Column("name", sa.String(50), nullable=False),
    sa.Column("start_date", sa.DateTime, nullable=False),
    sa.Column("end_date", sa.DateTime, nullable=False),
    sa.Column("is_current", sa.Boolean, nullable=False, default=False),
    _created_at(),
    _updated_at(),
)

grades = sa.Table(
    "grades",
    metadata,
    _id(),
    sa.Column("name", sa.String(50), nullable=False),
    sa.Column("order", sa.Integer, nullable=False, default=0),
    _created_at(),
    _updated_at(),
)

sections = sa.Table(
    "sections",
    metadata,
    _id(),
    sa.Column("name", sa.String(10), nullable=False),
    sa.Column("grade_id", sa.String(36), sa.ForeignKey("grades.id"), nullable=False),
    _created_at(),
    _updated_at(),
)

parents = sa.Table(
    "parents",
    metadata,
    _id(),
    sa.Column("first_name", sa.String(50), nullable=False),
    sa.Column("last_name", sa.String(50), nullable=False),
    sa.Column("email", sa.String(100), nullable=True),
    sa.Column("phone", sa.String(15), nullable=True),
    sa.Column("address", sa.String(500), nullable=True),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
    _created_at(),
    _updated_at(),
)

students = sa.Table(
    "students",
    metadata,
    _id(),
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
    sa.Column("status", sa.String(20), nullable=False, default="active"),
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
    _created_at(),
    _updated_at(),
)

teachers = sa.Table(
    "teachers",
    metadata,
    _id(),
    sa.Column("first_name", sa.String(50), nullable=False),
    sa.Column("last_name", sa.String(50), nullable=False),
    sa.Column("email", sa.String(100), nullable=True),
    sa.Column("phone", sa.String(15), nullable=True),
    sa.Column("subject", sa.String(50), nullable=True),
    sa.Column("status", sa.String(20), nullable=False, default="active"),
    sa.Column("photo", sa.String(255), nullable=True),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
    _created_at(),
    _updated_at(),
)

audit_logs = sa.Table(
    "audit_logs",
    metadata,
    _id(),
    sa.Column("action", sa.String(20), nullable=False),
    sa.Column("entity", sa.String(50), nullable=False),
    sa.Column("entity_id", sa.String(36), nullable=False),
    sa.Column("summary", sa.String(255), nullable=True),
    _created_at(),
    _updated_at(),
)

TABLES: dict[str, sa.Table] = {
    "user": users,
    "academic_year": academic_years,
    "grade": grades,
    "section": sections,
    "parent": parents,
    "student": students,
    "teacher": teachers,
    "audit_log": audit_logs,
}


@dataclass(frozen=True)
class Relation:
    """``one``: ``local_key`` on this model points at ``remote_key`` on the target.

    ``many``: ``remote_key`` on the target points back at ``local_key`` here.
    """

    target: str
    kind: Literal["one", "many"]
    local_key: str
    remote_key: str = "id"


RELATIONS: dict[str, dict[str, Relation]] = {
    "grade": {
        "sections": Relation("section", "many", "id", "grade_id"),
    },
    "section": {
        "grade": Relation("grade", "one", "grade_id"),
        "students": Relation("student", "many", "id", "section_id"),
    },
    "student": {
        "grade": Relation("grade", "one", "grade_id"),
        "section": Relation("section", "one", "section_id"),
        "guardian": Relation("parent", "one", "guardian_id"),
        "academic_year": Relation("academic_year", "one", "academic_year_id"),
        "user": Relation("user", "one", "user_id"),
    },
    "parent": {
        "user": Relation("user", "one", "user_id"),
        "children": Relation("student", "many", "id", "guardian_id"),
    },
    "teacher": {
        "user": Relation("user", "one", "user_id"),
    },
}


def table_for(model: str) -> sa.Table:
    try:
        return TABLES[model]
    except KeyError:
        raise ValueError(f"Unknown model: {model!r}") from None


def relations_for(model: str) -> dict[str, Relation]:
    return RELATIONS.get(model, {})
