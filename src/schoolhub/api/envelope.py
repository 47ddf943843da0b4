"""Uniform success/error envelopes for every API response.

Success: ``{"success": true, "data": ...}``
Error:   ``{"success": false, "error": {"message": ..., "code": ..., "details": ...}}``

A 204 response is the one exception and carries no body at all.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from starlette.responses import JSONResponse, Response

from schoolhub.core.errors import ApiError, ConstraintViolation, UniqueConstraintError, issue

logger = logging.getLogger(__name__)


def success(data: Any, status: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": jsonable_encoder(data, by_alias=True)}, status_code=status)


def error(
    message: str,
    status: int = 500,
    code: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {"message": message}
    if code is not None:
        body["code"] = code
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse({"success": False, "error": body}, status_code=status)


def not_found(resource: str = "Resource") -> JSONResponse:
    return error(f"{resource} not found", 404, "NOT_FOUND")


def bad_request(message: str, details: dict[str, Any] | None = None) -> JSONResponse:
    return error(message, 400, "BAD_REQUEST", details)


def unauthorized(message: str = "Unauthorized") -> JSONResponse:
    return error(message, 401, "UNAUTHORIZED")


def forbidden(message: str = "Forbidden") -> JSONResponse:
    return error(message, 403, "FORBIDDEN")


def method_not_allowed(message: str = "Method not allowed") -> JSONResponse:
    return error(message, 405, "METHOD_NOT_ALLOWED")


def conflict(message: str, details: dict[str, Any] | None = None) -> JSONResponse:
    return error(message, 409, "CONFLICT", details)


def from_constraint_violation(exc: ConstraintViolation) -> JSONResponse:
    if isinstance(exc, UniqueConstraintError):
        path: list[str | int] = [to_camel(exc.field)]
        return conflict(f"{exc.model} already exists", {"issues": [issue(path, "Must be unique", "unique")]})
    return conflict("Conflicts with existing data")


def created(data: Any) -> JSONResponse:
    return success(data, 201)


def no_content() -> Response:
    return Response(status_code=204)


def validation_issues(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten a Pydantic ``ValidationError`` into per-field issues."""
    return [issue(list(err["loc"]), err["msg"], err["type"]) for err in exc.errors(include_url=False)]


def from_api_error(exc: ApiError) -> JSONResponse:
    return error(exc.message, exc.status_code, exc.code, exc.details)


def internal_error(exc: BaseException, context: str | None = None) -> JSONResponse:
    """Convert any exception raised inside a handler into an envelope response."""
    if isinstance(exc, ValidationError):
        return bad_request("Validation failed", {"issues": validation_issues(exc)})
    if isinstance(exc, ApiError):
        return from_api_error(exc)
    if isinstance(exc, ConstraintViolation):
        return from_constraint_violation(exc)

    logger.error("[INTERNAL_ERROR] %s", context or "", exc_info=exc)
    return error("Internal server error", 500, "INTERNAL_ERROR")


async def handle_api_error(fn: Callable[[], Awaitable[Response]], context: str | None = None) -> Response:
    try:
        return await fn()
    except Exception as exc:
        return internal_error(exc, context)
