"""Error Handlers - turn exceptions raised below the routes into JSON error envelopes.

Invariants:
    - FeedServerError -> its own http_status and to_response() envelope
    - RequestValidationError (bad before/count query values) -> 400 with per-parameter details
    - Anything else -> 500 INTERNAL_ERROR, never echoing the exception text
    - PUT rejections keep their outcome in the envelope context

Design Decisions:
    - Handlers are module functions registered with add_exception_handler, so
      tests can call them directly
    - Client-caused errors logged at warning, server-side failures at error
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from feedserver.core.errors import ErrorCategory, ErrorSeverity, FeedServerError

logger = logging.getLogger(__name__)


async def handle_feedserver_error(request: Request, exc: FeedServerError) -> JSONResponse:
    level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
    logger.log(
        level,
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "user_id": exc.context.user_id,
            "signature": exc.context.signature,
            "outcome": exc.context.outcome,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "parameter": ".".join(str(part) for part in e["loc"][1:]) or str(e["loc"][0]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request parameters on {request.url.path}",
        extra={"path": request.url.path, "error_code": "VALIDATION_ERROR"},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request parameters",
            "category": ErrorCategory.VALIDATION.value,
            "severity": ErrorSeverity.WARNING.value,
            "details": details,
        }},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc, extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "category": ErrorCategory.INTERNAL.value,
            "severity": ErrorSeverity.CRITICAL.value,
        }},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the three handlers to the app, most specific first."""
    app.add_exception_handler(FeedServerError, handle_feedserver_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
