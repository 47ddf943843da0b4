"""The school resources exposed under ``/api``."""

from schoolhub.core.query import FilterConfig, Operator, ValueType
from schoolhub.core.registry import READ_ONLY, ResourceConfig, ResourceRegistry
from schoolhub.resources import schemas, transforms
from schoolhub.resources.hooks import AcademicYearHooks, AuditedHooks, StudentHooks

CREATED_AT = {"createdAt": "created_at"}


def grade_config() -> ResourceConfig:
    return ResourceConfig(
        resource_name="grade",
        model="grade",
        search_fields=("name",),
        sort_fields={"name": "name", "order": "order", **CREATED_AT},
        default_sort="order",
        select=("id", "name", "order"),
        create_schema=schemas.GradeForm,
        update_schema=schemas.GradeUpdate,
        transform_response=transforms.grade_response,
    )


def section_config() -> ResourceConfig:
    return ResourceConfig(
        resource_name="section",
        model="section",
        search_fields=("name",),
        filter_fields={"gradeId": FilterConfig("grade_id")},
        sort_fields={"name": "name", **CREATED_AT},
        default_sort="name",
        include={"grade": True},
        create_schema=schemas.SectionForm,
        update_schema=schemas.SectionUpdate,
        transform_create=transforms.section_input,
        transform_update=transforms.section_input,
        transform_response=transforms.section_response,
    )


def student_config() -> ResourceConfig:
    return ResourceConfig(
        resource_name="student",
        model="student",
        search_fields=("first_name", "last_name", "roll_number", "email"),
        filter_fields={
            "gradeId": FilterConfig("grade_id"),
            "sectionId": FilterConfig("section_id"),
            "guardianId": FilterConfig("guardian_id"),
            "status": FilterConfig(
                "status",
                operator=Operator.IN,
                type=ValueType.ENUM,
                choices=frozenset({"active", "inactive", "graduated", "transferred"}),
            ),
            "gender": FilterConfig("gender", type=ValueType.ENUM, choices=frozenset({"male", "female", "other"})),
            "enrolledBetween": FilterConfig("admission_date", operator=Operator.BETWEEN, type=ValueType.DATE),
            "enrolledAfter": FilterConfig("admission_date", operator=Operator.GTE, type=ValueType.DATE),
        },
        sort_fields={
            "firstName": "first_name",
            "lastName": "last_name",
            "rollNumber": "roll_number",
            "admissionDate": "admission_date",
            **CREATED_AT,
        },
        default_sort="created_at",
        default_sort_order="desc",
        include={"grade": True, "section": True, "guardian": True},
        create_schema=schemas.StudentForm,
        update_schema=schemas.StudentUpdate,
        transform_create=transforms.student_create,
        transform_update=transforms.student_update,
        transform_response=transforms.student_response,
        hooks=StudentHooks(),
    )


def teacher_config() -> ResourceConfig:
    return ResourceConfig(
        resource_name="teacher",
        model="teacher",
        search_fields=("first_name", "last_name", "email", "phone"),
        filter_fields={
            "status": FilterConfig(
                "status", type=ValueType.ENUM, choices=frozenset({"active", "inactive", "on_leave"})
            ),
            "subject": FilterConfig("subject", operator=Operator.CONTAINS),
        },
        sort_fields={"firstName": "first_name", "lastName": "last_name", **CREATED_AT},
        default_sort="created_at",
        default_sort_order="desc",
        create_schema=schemas.TeacherForm,
        update_schema=schemas.TeacherUpdate,
        transform_create=transforms.person_input,
        transform_update=transforms.person_input,
        transform_response=transforms.teacher_response,
        hooks=AuditedHooks(),
    )


def parent_config() -> ResourceConfig:
    return ResourceConfig(
        resource_name="parent",
        model="parent",
        search_fields=("first_name", "last_name", "email", "phone"),
        sort_fields={"firstName": "first_name", "lastName": "last_name", **CREATED_AT},
        default_sort="first_name",
        include={"children": {"include": {"grade": True, "section": True}}},
        create_schema=schemas.ParentForm,
        update_schema=schemas.ParentUpdate,
        transform_create=transforms.person_input,
        transform_update=transforms.person_input,
        transform_response=transforms.parent_response,
        hooks=AuditedHooks(),
    )


def academic_year_config() -> ResourceConfig:
    return ResourceConfig(
        resource_name="academicYear",
        model="academic_year",
        search_fields=("name",),
        filter_fields={"isCurrent": FilterConfig("is_current", type=ValueType.BOOLEAN)},
        sort_fields={"name": "name", "startDate": "start_date", **CREATED_AT},
        default_sort="start_date",
        default_sort_order="desc",
        create_schema=schemas.AcademicYearForm,
        update_schema=schemas.AcademicYearUpdate,
        transform_create=transforms.academic_year_input,
        transform_update=transforms.academic_year_input,
        transform_response=transforms.academic_year_response,
        hooks=AcademicYearHooks(),
    )


def audit_log_config() -> ResourceConfig:
    return ResourceConfig(
        resource_name="auditLog",
        model="audit_log",
        search_fields=("summary",),
        filter_fields={
            "entity": FilterConfig("entity"),
            "action": FilterConfig(
                "action", type=ValueType.ENUM, choices=frozenset({"create", "update", "delete"})
            ),
            "entityId": FilterConfig("entity_id"),
            "createdBetween": FilterConfig("created_at", operator=Operator.BETWEEN, type=ValueType.DATE),
        },
        sort_fields=CREATED_AT,
        default_sort="created_at",
        default_sort_order="desc",
        transform_response=transforms.audit_log_response,
        operations=READ_ONLY,
    )


def default_resources() -> list[ResourceConfig]:
    return [
        grade_config(),
        section_config(),
        student_config(),
        teacher_config(),
        parent_config(),
        academic_year_config(),
        audit_log_config(),
    ]


def build_registry() -> ResourceRegistry:
    return ResourceRegistry(default_resources())
