"""Error Handlers — turn raised errors into the JSON error envelope.

Invariants:
    - PapermarkError answers with its own status and to_response() body
    - Request validation failures answer 400 VALIDATION_ERROR with one detail per field
    - Anything else answers 500 INTERNAL_ERROR without internal details
    - A retry_after_ms in the error context becomes a Retry-After header (seconds, rounded up)
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from papermark.core.errors import ErrorCategory, ErrorSeverity, PapermarkError

logger = logging.getLogger(__name__)


def _retry_headers(exc: PapermarkError) -> dict[str, str] | None:
    retry_after_ms = exc.context.retry_after_ms
    if not retry_after_ms:
        return None
    return {"Retry-After": str(max(1, math.ceil(retry_after_ms / 1000)))}


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity, **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }


def _field_errors(exc: RequestValidationError) -> list[dict]:
    """Pydantic errors flattened to {field, message, type}; the "body"/"query" prefix is dropped."""
    details = []
    for error in exc.errors():
        location = [str(part) for part in error["loc"]]
        if location and location[0] in ("body", "query", "path", "header", "cookie"):
            location = location[1:]
        details.append({
            "field": ".".join(location),
            "message": error["msg"],
            "type": error["type"],
        })
    return details


async def handle_papermark_error(request: Request, exc: PapermarkError) -> JSONResponse:
    level = logging.ERROR if exc.http_status >= 500 else logging.INFO
    logger.log(
        level,
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "status_code": exc.http_status,
            "path": request.url.path,
            "link_id": exc.context.link_id,
            "view_id": exc.context.view_id,
            "team_id": exc.context.team_id,
        },
    )
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=_retry_headers(exc),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _field_errors(exc)
    logger.info(
        f"Rejected request on {request.url.path}: {len(details)} invalid field(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PapermarkError, handle_papermark_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
