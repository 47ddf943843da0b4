"""Exception handlers that keep framework-level errors inside the response envelope."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from schoolhub.api.envelope import bad_request, error
from schoolhub.core.errors import issue

_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error(str(exc.detail), exc.status_code, _CODES.get(exc.status_code, "HTTP_ERROR"))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [issue(list(err["loc"]), err["msg"], err["type"]) for err in exc.errors()]
    return bad_request("Invalid request", {"issues": issues})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
