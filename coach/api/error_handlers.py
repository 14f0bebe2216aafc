"""Error Handlers: turn exceptions escaping a conversation route into JSON envelopes.

Invariants:
    - CoachError -> its own to_response() at its own http_status
    - RequestValidationError -> 400 with one entry per offending field
    - Anything else -> 500 INTERNAL_ERROR, message never includes the exception text
    - Retryable failures (scoring, persistence) log at WARNING, the rest at ERROR
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from coach.core.errors import CoachError, ErrorCategory, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CoachError, handle_coach_error)
    app.add_exception_handler(RequestValidationError, handle_invalid_request)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_coach_error(request: Request, exc: CoachError) -> JSONResponse:
    logger.log(
        logging.WARNING if exc.recoverable else logging.ERROR,
        f"{request.method} {request.url.path} -> {exc.code}: {exc.message}",
        extra={
            "error_code": exc.code,
            "conversation_id": exc.context.conversation_id,
            "phase": exc.context.phase,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_invalid_request(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [_field_error(e) for e in exc.errors()]
    logger.warning(f"Rejected body on {request.url.path}: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}", exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _field_error(error: dict) -> dict:
    return {
        "field": ".".join(str(part) for part in error["loc"]),
        "message": error["msg"],
        "type": error["type"],
    }


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    **extra,
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
