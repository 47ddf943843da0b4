"""Errors that cross the orchestrator boundary as envelope responses."""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP status and error code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(ApiError):
    status_code = 400
    code = "BAD_REQUEST"

    @classmethod
    def from_issues(cls, message: str, issues: list[dict[str, Any]]) -> BadRequestError:
        return cls(message, {"issues": issues})


class UnauthorizedError(ApiError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(ApiError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found")


class MethodNotAllowedError(ApiError):
    status_code = 405
    code = "METHOD_NOT_ALLOWED"

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(message)


class InvalidFilterConfig(ValueError):
    """Raised when a filter declares an operator its value type cannot support."""


class FilterValueError(ValueError):
    """Raised when a raw filter value cannot be coerced to the declared type."""

    def __init__(self, param: str, value: object, reason: str) -> None:
        super().__init__(f"Invalid value {value!r} for filter {param!r}: {reason}")
        self.param = param
        self.value = value
        self.reason = reason


class ConstraintViolation(ValueError):
    """Raised by a store when a write breaks a table constraint."""

    def __init__(self, model: str, message: str) -> None:
        super().__init__(message)
        self.model = model


class UniqueConstraintError(ConstraintViolation):
    def __init__(self, model: str, field: str, value: object) -> None:
        super().__init__(model, f"{model} with {field}={value!r} already exists")
        self.field = field
        self.value = value


def issue(path: list[str | int], message: str, code: str = "custom") -> dict[str, Any]:
    """Build a single validation issue in the shape clients receive under ``details.issues``."""
    return {"path": path, "message": message, "code": code}
