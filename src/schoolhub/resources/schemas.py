"""Wire-format input schemas and response DTOs for the school resources.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


PersonName = Annotated[str, Field(min_length=2, max_length=50)]
PhoneNumber = Annotated[str, Field(min_length=10, max_length=15, pattern=r"^[+]?[0-9-]+$")]
RollNumber = Annotated[str, Field(min_length=1, max_length=20, pattern=r"^[A-Za-z0-9-]+$")]
RelationId = Annotated[str, Field(min_length=1)]
OptionalEmail = EmailStr | Literal[""] | None

Gender = Literal["male", "female", "other"]
StudentStatus = Literal["active", "inactive", "graduated", "transferred"]
StaffStatus = Literal["active", "inactive", "on_leave"]


# --- Input schemas ---


class GradeForm(WireModel):
    name: str = Field(min_length=1, max_length=50)
    order: int = Field(default=0, ge=0)


class GradeUpdate(WireModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    order: int | None = Field(default=None, ge=0)


class SectionForm(WireModel):
    name: str = Field(min_length=1, max_length=10)
    grade: RelationId


class SectionUpdate(WireModel):
    name: str | None = Field(default=None, min_length=1, max_length=10)
    grade: RelationId | None = None


class StudentForm(WireModel):
    first_name: PersonName
    last_name: PersonName
    roll_number: RollNumber
    gender: Gender
    grade: RelationId
    section: RelationId
    phone: PhoneNumber
    email: OptionalEmail = None
    guardian_name: str = Field(min_length=2, max_length=100)
    relationship: str = Field(min_length=2, max_length=50)
    guardian_phone: PhoneNumber
    address: str | None = Field(default=None, max_length=500)
    medical_info: str | None = Field(default=None, max_length=1000)
    date_of_birth: date | None = None
    admission_date: date | None = None
    status: StudentStatus | None = None


class StudentUpdate(WireModel):
    """Every ``StudentForm`` field, all optional."""

    first_name: PersonName | None = None
    last_name: PersonName | None = None
    roll_number: RollNumber | None = None
    gender: Gender | None = None
    grade: RelationId | None = None
    section: RelationId | None = None
    phone: PhoneNumber | None = None
    email: OptionalEmail = None
    guardian_name: str | None = Field(default=None, min_length=2, max_length=100)
    relationship: str | None = Field(default=None, min_length=2, max_length=50)
    guardian_phone: PhoneNumber | None = None
    address: str | None = Field(default=None, max_length=500)
    medical_info: str | None = Field(default=None, max_length=1000)
    date_of_birth: date | None = None
    admission_date: date | None = None
    status: StudentStatus | None = None


class TeacherForm(WireModel):
    first_name: PersonName
    last_name: PersonName
    email: OptionalEmail = None
    phone: PhoneNumber | None = None
    subject: str | None = Field(default=None, max_length=50)
    status: StaffStatus = "active"


class TeacherUpdate(WireModel):
    first_name: PersonName | None = None
    last_name: PersonName | None = None
    email: OptionalEmail = None
    phone: PhoneNumber | None = None
    subject: str | None = Field(default=None, max_length=50)
    status: StaffStatus | None = None


class ParentForm(WireModel):
    first_name: PersonName
    last_name: PersonName
    email: OptionalEmail = None
    phone: PhoneNumber | None = None
    address: str | None = Field(default=None, max_length=500)


class ParentUpdate(WireModel):
    first_name: PersonName | None = None
    last_name: PersonName | None = None
    email: OptionalEmail = None
    phone: PhoneNumber | None = None
    address: str | None = Field(default=None, max_length=500)


class AcademicYearForm(WireModel):
    name: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date
    is_current: bool = False

    @model_validator(mode="after")
    def _check_range(self) -> AcademicYearForm:
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class AcademicYearUpdate(WireModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    start_date: date | None = None
    end_date: date | None = None
    is_current: bool | None = None

    @model_validator(mode="after")
    def _check_range(self) -> AcademicYearUpdate:
        if self.start_date is not None and self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


# --- Response DTOs ---


class GradeOut(WireModel):
    id: str
    name: str
    order: int


class SectionOut(WireModel):
    id: str
    name: str
    grade: str
    grade_name: str | None = None


class StudentOut(WireModel):
    id: str
    roll_number: str
    name: str
    first_name: str
    last_name: str
    gender: str
    grade: str
    grade_name: str | None = None
    section: str
    section_name: str | None = None
    status: str
    guardian: str | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    relationship: str | None = None
    phone: str | None = None
    email: str = ""
    address: str | None = None
    medical_info: str | None = None
    admission_date: str | None = None
    avatar: str


class TeacherOut(WireModel):
    id: str
    name: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    subject: str | None = None
    status: str
    avatar: str


class ParentChildOut(WireModel):
    id: str
    name: str
    grade: str | None = None
    section: str | None = None


class ParentOut(WireModel):
    id: str
    name: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    students: list[ParentChildOut] = Field(default_factory=list)


class AcademicYearOut(WireModel):
    id: str
    name: str
    start_date: str
    end_date: str
    is_current: bool


class AuditLogOut(WireModel):
    id: str
    action: str
    entity: str
    entity_id: str
    summary: str | None = None
    created_at: datetime
