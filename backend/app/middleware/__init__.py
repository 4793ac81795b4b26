"""
Middleware Package

Provides FastAPI middleware and the service exception hierarchy.

Usage:
    from app.middleware import setup_error_handling, NotFoundError

    setup_error_handling(app, debug=settings.DEBUG)
"""

from app.middleware.error_handling import (
    ErrorHandlingMiddleware,
    InvalidStateError,
    NotFoundError,
    ServiceError,
    StoreUnavailableError,
    setup_error_handling,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "InvalidStateError",
    "NotFoundError",
    "ServiceError",
    "StoreUnavailableError",
    "setup_error_handling",
]
