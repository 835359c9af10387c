"""Translation of failures into HTTP error responses.

Every error body leaving the service is built here:

    {"status": 409, "error": "Conflict", "message": "...", "timestamp": "..."}

Validation failures add an ``errors`` map of field name to message.
Unexpected exceptions are logged in full and rendered with a generic message.
"""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..auth.errors import AuthError, AuthFailure, ErrorKind
from ..auth.validation import REQUIRED_MESSAGES

logger = logging.getLogger("keyward.api.errors")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# ErrorKind -> (HTTP status, error label)
ERROR_STATUS: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.UNAUTHENTICATED: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    ErrorKind.INVALID_CREDENTIAL: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    ErrorKind.INSUFFICIENT_PERMISSIONS: (status.HTTP_403_FORBIDDEN, "Forbidden"),
    ErrorKind.USERNAME_TAKEN: (status.HTTP_409_CONFLICT, "Conflict"),
    ErrorKind.INVALID_CREDENTIALS: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    ErrorKind.VALIDATION_FAILED: (status.HTTP_400_BAD_REQUEST, "Validation Failed"),
    ErrorKind.USER_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Not Found"),
    ErrorKind.INTERNAL_ERROR: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"),
}

_HTTP_LABELS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    415: "Unsupported Media Type",
}


def format_timestamp(moment: datetime | None = None) -> str:
    """Format a timestamp for response bodies (UTC)."""
    return (moment or datetime.now(UTC)).strftime(TIMESTAMP_FORMAT)


def failure_body(failure: AuthFailure) -> dict:
    """Build the outward error body for a failure."""
    status_code, label = ERROR_STATUS[failure.kind]
    body = {
        "status": status_code,
        "error": label,
        "message": failure.message,
        "timestamp": format_timestamp(),
    }
    if failure.kind == ErrorKind.VALIDATION_FAILED:
        body["errors"] = dict(failure.field_errors)
    return body


def failure_response(failure: AuthFailure, headers: dict[str, str] | None = None) -> JSONResponse:
    """Render a failure as a JSON response."""
    status_code, _ = ERROR_STATUS[failure.kind]
    if failure.kind == ErrorKind.INTERNAL_ERROR:
        logger.error(f"Internal error: {failure.detail or failure.message}")
    else:
        logger.warning(f"{failure.kind.value}: {failure.detail or failure.message}")
    return JSONResponse(status_code=status_code, content=failure_body(failure), headers=headers)


def _field_name(loc: tuple) -> str:
    names = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return names[-1] if names else "request"


def validation_failure(exc: RequestValidationError) -> AuthFailure:
    """Convert FastAPI request validation errors into field errors."""
    field_errors: dict[str, str] = {}
    for error in exc.errors():
        field = _field_name(tuple(error.get("loc", ())))
        if field in field_errors:
            continue
        if error.get("type") == "missing":
            message = REQUIRED_MESSAGES.get(field, f"{field} is required")
        elif error.get("type") == "json_invalid":
            field = "request"
            message = "Malformed JSON request body"
        elif "error" in (error.get("ctx") or {}):
            message = str(error["ctx"]["error"])
        else:
            message = error.get("msg", "Invalid value")
        field_errors[field] = message
    return AuthFailure.validation(field_errors)


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    headers = None
    if exc.kind in (ErrorKind.UNAUTHENTICATED, ErrorKind.INVALID_CREDENTIAL):
        headers = {"WWW-Authenticate": "ApiKey"}
    return failure_response(exc.failure, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    failure = validation_failure(exc)
    logger.warning(f"Validation failed on {request.url.path}: {len(failure.field_errors)} errors")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=failure_body(failure))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else _HTTP_LABELS.get(exc.status_code, "Error")
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.url.path}: {detail}")
        detail = "An unexpected error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": exc.status_code,
            "error": _HTTP_LABELS.get(exc.status_code, "Error"),
            "message": detail,
            "timestamp": format_timestamp(),
        },
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error handling {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=failure_body(AuthFailure.of(ErrorKind.INTERNAL_ERROR)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on an application."""
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
