"""
Global exception handlers for FastAPI application.

Every error leaves the API as {"detail", "code", "field"?, "metadata"?}
with an X-Request-ID header, the same body the messaging gateway sends
in its "error" events.
"""

import logging
import uuid
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException, ConflictError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_TO_CODE = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.AUTH_NOT_AUTHENTICATED,
    403: ErrorCode.AUTHZ_FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.RESOURCE_CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.RATE_LIMIT_EXCEEDED,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.SERVER_UNAVAILABLE,
    503: ErrorCode.SERVER_UNAVAILABLE,
    504: ErrorCode.GATEWAY_TIMEOUT,
}

# Location prefixes FastAPI puts in front of the offending field name
_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def generate_request_id() -> str:
    """Short request ID for error tracing"""
    return str(uuid.uuid4())[:8]


def _error_response(
    status_code: int,
    body: dict[str, Any],
    request_id: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    response_headers = {"X-Request-ID": request_id}
    if headers:
        response_headers.update(headers)
    return JSONResponse(status_code=status_code, content=body, headers=response_headers)


def _first_field(errors: list[dict[str, Any]]) -> str | None:
    """Name of the first invalid field, e.g. "budget_max" for ("body", "budget_max")."""
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in _LOCATION_ROOTS]
        if loc:
            return ".".join(loc)
    return None


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle AppException and its subclasses (not found, blocked,
    not a participant, state errors, gateway timeouts...).
    """
    request_id = generate_request_id()

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "AppException: %s (code=%s, status=%d, request_id=%s, path=%s)",
        exc.message,
        exc.code.value,
        exc.status_code,
        request_id,
        request.url.path,
    )

    return _error_response(
        exc.status_code, exc.to_dict(), request_id, getattr(exc, "headers", None)
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request body/query validation errors.
    The full pydantic error list goes in "detail", the first bad field in "field".
    """
    request_id = generate_request_id()
    raw_errors = exc.errors()

    logger.warning(
        "ValidationError: %s (request_id=%s, path=%s)",
        raw_errors,
        request_id,
        request.url.path,
    )

    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in raw_errors
    ]
    body: dict[str, Any] = {
        "detail": errors,
        "code": ErrorCode.VALIDATION_ERROR.value,
    }
    field = _first_field(raw_errors)
    if field:
        body["field"] = field

    return _error_response(422, body, request_id)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    A constraint violation that no service turned into a domain error,
    typically two requests racing on the same unique pair.
    """
    request_id = generate_request_id()

    logger.warning(
        "IntegrityError: %s (request_id=%s, path=%s)",
        exc.orig,
        request_id,
        request.url.path,
    )

    conflict = ConflictError("Request conflicts with a concurrent change, please retry")
    return _error_response(conflict.status_code, conflict.to_dict(), request_id)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Convert FastAPI/Starlette HTTP exceptions to the standard body."""
    request_id = generate_request_id()
    error_code = STATUS_TO_CODE.get(exc.status_code, ErrorCode.SERVER_ERROR)

    logger.warning(
        "HTTPException: %s (status=%d, request_id=%s, path=%s)",
        exc.detail,
        exc.status_code,
        request_id,
        request.url.path,
    )

    body: dict[str, Any] = {
        "detail": exc.detail or "An error occurred",
        "code": error_code.value,
    }
    # Keeps WWW-Authenticate on 401s
    return _error_response(exc.status_code, body, request_id, getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log the traceback, answer with a generic 500."""
    request_id = generate_request_id()

    logger.exception(
        "Unhandled exception (request_id=%s, path=%s): %s",
        request_id,
        request.url.path,
        str(exc),
    )

    body: dict[str, Any] = {
        "detail": "Internal server error, please try again later",
        "code": ErrorCode.SERVER_ERROR.value,
    }
    return _error_response(500, body, request_id)
