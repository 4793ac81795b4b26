"""
Unit tests for the error hierarchy and store error translation.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.db.errors import store_errors
from app.middleware.error_handling import (
    InvalidStateError,
    NotFoundError,
    ServiceError,
    StoreUnavailableError,
    service_error_response,
)


class TestServiceErrors:
    """Status codes and error codes of the service exceptions."""

    @pytest.mark.parametrize(
        "error_class,status_code,error_code,retryable",
        [
            (NotFoundError, 404, "not_found", False),
            (InvalidStateError, 409, "invalid_state", False),
            (StoreUnavailableError, 503, "store_unavailable", True),
        ],
    )
    def test_error_attributes(self, error_class, status_code, error_code, retryable):
        error = error_class("boom", details={"id": "x"})

        assert isinstance(error, ServiceError)
        assert error.status_code == status_code
        assert error.error_code == error_code
        assert error.retryable is retryable
        assert error.message == "boom"
        assert error.details == {"id": "x"}

    def test_response_hides_details_outside_debug(self):
        response = service_error_response(NotFoundError("missing", details={"id": "x"}))
        body = json.loads(response.body)

        assert response.status_code == 404
        assert body["error"] == "not_found"
        assert body["message"] == "missing"
        assert body["details"] is None

    def test_response_includes_details_in_debug(self):
        response = service_error_response(
            StoreUnavailableError("down", details={"operation": "x"}),
            error_id="abc12345",
            debug=True,
        )
        body = json.loads(response.body)

        assert response.status_code == 503
        assert body["error_id"] == "abc12345"
        assert body["details"] == {"operation": "x"}
        assert body["retryable"] is True


class TestStoreErrors:
    """store_errors translates transient database failures."""

    @pytest.fixture
    def db(self):
        mock = MagicMock()
        mock.rollback = AsyncMock()
        return mock

    @pytest.mark.asyncio
    async def test_operational_error_becomes_store_unavailable(self, db):
        with pytest.raises(StoreUnavailableError) as exc_info:
            async with store_errors(db, "get_card"):
                raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        db.rollback.assert_awaited_once()
        assert exc_info.value.details["operation"] == "get_card"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    @pytest.mark.asyncio
    async def test_connection_error_becomes_store_unavailable(self, db):
        with pytest.raises(StoreUnavailableError):
            async with store_errors(db, "delete_by_ids"):
                raise ConnectionError("reset by peer")

    @pytest.mark.asyncio
    async def test_integrity_error_propagates(self, db):
        with pytest.raises(IntegrityError):
            async with store_errors(db, "create"):
                raise IntegrityError("INSERT", {}, Exception("duplicate key"))

        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_service_errors_pass_through(self, db):
        with pytest.raises(NotFoundError):
            async with store_errors(db, "get_card"):
                raise NotFoundError("missing")

        db.rollback.assert_not_awaited()
