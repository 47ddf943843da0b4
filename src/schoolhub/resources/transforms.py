"""Input and response transforms for the school resources.

Input transforms map validated camelCase forms (already dumped to snake_case
by pydantic) onto storage columns and relation ``connect`` wrappers. Response
transforms shape stored records into the DTOs in ``schoolhub.resources.schemas``.
"""

from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any

from schoolhub.db.helpers import utcnow
from schoolhub.resources.schemas import (
    AcademicYearOut,
    AuditLogOut,
    GradeOut,
    ParentChildOut,
    ParentOut,
    SectionOut,
    StudentOut,
    TeacherOut,
)

# Form fields whose column cannot hold NULL; an explicit null in an update is dropped.
_REQUIRED_STUDENT_COLUMNS = frozenset({"first_name", "last_name", "roll_number", "gender", "status", "grade", "section"})

_STUDENT_RENAMES = {
    "guardian_name": "emergency_contact",
    "guardian_phone": "emergency_phone",
    "medical_info": "medical_conditions",
}


def connect(id: str) -> dict[str, Any]:
    return {"connect": {"id": id}}


def as_datetime(value: date | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def iso_date(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%Y-%m-%d")


def initials(first_name: str, last_name: str) -> str:
    return f"{first_name[:1]}{last_name[:1]}".upper()


def full_name(record: Mapping[str, Any]) -> str:
    return f"{record.get('first_name', '')} {record.get('last_name', '')}".strip()


def _related_name(record: Mapping[str, Any], relation: str) -> str | None:
    related = record.get(relation)
    return related.get("name") if isinstance(related, Mapping) else None


# --- Grade ---


def grade_response(record: dict[str, Any]) -> GradeOut:
    return GradeOut(id=record["id"], name=record["name"], order=record["order"])


# --- Section ---


def section_input(data: dict[str, Any]) -> dict[str, Any]:
    values = dict(data)
    if values.get("grade") is not None:
        values["grade"] = connect(values["grade"])
    else:
        values.pop("grade", None)
    return {k: v for k, v in values.items() if v is not None}


def section_response(record: dict[str, Any]) -> SectionOut:
    return SectionOut(
        id=record["id"],
        name=record["name"],
        grade=record["grade_id"],
        grade_name=_related_name(record, "grade"),
    )


# --- Student ---


def _student_values(data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in data.items():
        if value is None and key in _REQUIRED_STUDENT_COLUMNS:
            continue
        if key in ("grade", "section"):
            values[key] = connect(value)
        elif key in _STUDENT_RENAMES:
            values[_STUDENT_RENAMES[key]] = value or None
        elif key in ("date_of_birth", "admission_date"):
            values[key] = as_datetime(value)
        elif key in ("email", "address"):
            values[key] = value or None
        else:
            values[key] = value
    return values


def student_create(data: dict[str, Any]) -> dict[str, Any]:
    """Map a validated student form onto columns, deriving the admission number."""
    values = _student_values(data)
    now = utcnow()
    values["admission_number"] = f"{now.year}{data['roll_number'].replace('STU', '')}"
    values["admission_date"] = values.get("admission_date") or now
    values["relationship"] = values.get("relationship") or "Parent"
    return values


def student_update(data: dict[str, Any]) -> dict[str, Any]:
    return _student_values(data)


def student_response(record: dict[str, Any]) -> StudentOut:
    first, last = record["first_name"], record["last_name"]
    return StudentOut(
        id=record["id"],
        roll_number=record["roll_number"],
        name=f"{first} {last}",
        first_name=first,
        last_name=last,
        gender=record["gender"],
        grade=record["grade_id"],
        grade_name=_related_name(record, "grade"),
        section=record["section_id"],
        section_name=_related_name(record, "section"),
        status=record["status"],
        guardian=record.get("guardian_id"),
        guardian_name=record.get("emergency_contact"),
        guardian_phone=record.get("emergency_phone"),
        relationship=record.get("relationship"),
        phone=record.get("phone"),
        email=record.get("email") or "",
        address=record.get("address"),
        medical_info=record.get("medical_conditions"),
        admission_date=iso_date(record.get("admission_date")),
        avatar=record.get("photo") or initials(first, last),
    )


# --- Teacher ---


def person_input(data: dict[str, Any]) -> dict[str, Any]:
    """Shared by teachers and parents: blank optional strings are stored as NULL."""
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("email", "phone", "address", "subject"):
            values[key] = value or None
        elif value is not None:
            values[key] = value
    return values


def teacher_response(record: dict[str, Any]) -> TeacherOut:
    first, last = record["first_name"], record["last_name"]
    return TeacherOut(
        id=record["id"],
        name=f"{first} {last}",
        first_name=first,
        last_name=last,
        email=record.get("email"),
        phone=record.get("phone"),
        subject=record.get("subject"),
        status=record["status"],
        avatar=record.get("photo") or initials(first, last),
    )


# --- Parent ---


def parent_response(record: dict[str, Any]) -> ParentOut:
    children = [
        ParentChildOut(
            id=child["id"],
            name=full_name(child),
            grade=_related_name(child, "grade"),
            section=_related_name(child, "section"),
        )
        for child in record.get("children") or []
    ]
    return ParentOut(
        id=record["id"],
        name=full_name(record),
        first_name=record["first_name"],
        last_name=record["last_name"],
        email=record.get("email"),
        phone=record.get("phone"),
        address=record.get("address"),
        students=children,
    )


# --- Academic year ---


def academic_year_input(data: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        values[key] = as_datetime(value) if key in ("start_date", "end_date") else value
    return values


def academic_year_response(record: dict[str, Any]) -> AcademicYearOut:
    return AcademicYearOut(
        id=record["id"],
        name=record["name"],
        start_date=iso_date(record["start_date"]) or "",
        end_date=iso_date(record["end_date"]) or "",
        is_current=bool(record["is_current"]),
    )


# --- Audit log ---


def audit_log_response(record: dict[str, Any]) -> AuditLogOut:
    return AuditLogOut(
        id=record["id"],
        action=record["action"],
        entity=record["entity"],
        entity_id=record["entity_id"],
        summary=record.get("summary"),
        created_at=record["created_at"],
    )
