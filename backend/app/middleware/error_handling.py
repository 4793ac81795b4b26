"""
Error Handling

Service exception hierarchy and its HTTP rendering.

Error kinds raised by the services:
    - NotFoundError: operating on a nonexistent card or event id
    - InvalidStateError: input that violates scheduling invariants
    - StoreUnavailableError: transient failure from the database layer

    NotFoundError and InvalidStateError indicate a caller bug or a stale
    reference and are surfaced immediately. StoreUnavailableError is
    retryable; the nightly eviction pass retries it once per learner and
    records it in the run report instead of aborting.

Rendering:
    Request → ErrorHandlingMiddleware.dispatch()
                  │
                  └─ try:
                        await call_next(request)  ← routers and services run here
                           │
                           └─ ServiceError → exception handler → ErrorResponse JSON
                     except Exception:  ← sanitized 500 ErrorResponse

Every error body carries an error_id that also appears in the log line, so a
client report can be matched to the server log.

Usage:
    from app.middleware.error_handling import NotFoundError, setup_error_handling

    setup_error_handling(app, debug=settings.DEBUG)

    raise NotFoundError(f"Card not found: {card_id}")
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str  # Error code (e.g., "not_found")
    message: str  # Human-readable message
    error_id: str  # For log correlation
    details: Optional[dict] = None  # Only populated in debug mode
    retryable: bool = False  # Safe to repeat the request
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _new_error_id() -> str:
    return str(uuid4())[:8]


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for review and calendar service errors.

    Subclasses fix the HTTP status code, the error code and whether the
    failure is worth retrying.

    Example:
        raise InvalidStateError("Card is archived", details={"card_id": card_id})
    """

    status_code: int = 500
    error_code: str = "service_error"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        details: dict = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a card or calendar event id doesn't exist.
    """

    status_code = 404
    error_code = "not_found"


class InvalidStateError(ServiceError):
    """
    Invalid state error.

    Raised when an operation receives state outside its invariants, e.g. a
    confidence factor outside its bounds or a non-root event type where a
    root is required.
    """

    status_code = 409
    error_code = "invalid_state"


class StoreUnavailableError(ServiceError):
    """
    Transient persistence failure.

    Raised by the stores when the database connection or statement fails for
    reasons unrelated to the request. Safe to retry.
    """

    status_code = 503
    error_code = "store_unavailable"
    retryable = True


# =============================================================================
# Rendering
# =============================================================================


def service_error_response(
    error: ServiceError,
    error_id: Optional[str] = None,
    debug: bool = False,
) -> JSONResponse:
    """
    Render a ServiceError as an ErrorResponse.

    Args:
        error: The raised service error
        error_id: Correlation id; generated when omitted
        debug: Whether to include the error details
    """
    body = ErrorResponse(
        error=error.error_code,
        message=error.message,
        error_id=error_id or _new_error_id(),
        details=error.details if debug else None,
        retryable=error.retryable,
    )
    return JSONResponse(status_code=error.status_code, content=body.model_dump(mode="json"))


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Catch-all for exceptions no handler rendered.

    Logs the traceback under a correlation id and returns a sanitized 500;
    the exception text and traceback are only included in debug mode.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            error_id = _new_error_id()
            logger.error(
                f"[{error_id}] Unhandled error on {request.method} {request.url.path}: "
                f"{type(e).__name__}: {e}",
                extra={"error_id": error_id, "traceback": traceback.format_exc()},
            )

            body = ErrorResponse(
                error="internal_server_error",
                message="An unexpected error occurred",
                error_id=error_id,
                details=(
                    {
                        "exception": type(e).__name__,
                        "message": str(e),
                        "traceback": traceback.format_exc(),
                    }
                    if self.debug
                    else None
                ),
            )
            return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Registers the ServiceError exception handler (rendered inside the
    router stack, so 4xx responses keep their status) and the catch-all
    middleware for everything else.

    Args:
        app: FastAPI application instance
        debug: Whether to include error details in responses
    """

    @app.exception_handler(ServiceError)
    async def _service_error_handler(request: Request, exc: ServiceError):
        error_id = _new_error_id()
        log = logger.warning if exc.status_code < 500 else logger.error
        log(f"[{error_id}] {exc.error_code} on {request.url.path}: {exc.message}")
        return service_error_response(exc, error_id=error_id, debug=debug)

    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")
