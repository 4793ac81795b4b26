"""
Translation of transient database failures.

Stores wrap their database work in `store_errors(db, "operation")`. Connection
and statement failures are rolled back and re-raised as
StoreUnavailableError, which callers may retry. Other SQLAlchemy errors
(integrity, programming) are rolled back and propagate unchanged.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.error_handling import StoreUnavailableError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, InterfaceError, ConnectionError, TimeoutError)


@asynccontextmanager
async def store_errors(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """
    Roll back and raise StoreUnavailableError on transient failures.

    Args:
        db: Session the wrapped block uses
        operation: Name used in logs and in the error message
    """
    try:
        yield
    except TRANSIENT_ERRORS as e:
        try:
            await db.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning(f"Rollback after failed {operation} also failed: {rollback_error}")
        logger.error(f"Store unavailable during {operation}: {type(e).__name__}: {e}")
        raise StoreUnavailableError(
            f"Store unavailable during {operation}",
            details={"operation": operation, "exception": type(e).__name__},
        ) from e
    except SQLAlchemyError:
        await db.rollback()
        raise
