"""Unit tests for the exception hierarchy."""

import asyncio

import pytest

from cpmgmt.models.detail_level import DetailLevel
from cpmgmt.utils.exceptions import (
    APIError,
    BatchInProgressError,
    CheckPointError,
    DetailLevelError,
    LoginFailedError,
    NoPermissionsError,
    ObjectNotFoundError,
    OperationCancelledError,
    SessionExpiredError,
    ValidationFailedError,
    WrongUsernameOrPasswordError,
    api_error_class,
    check_cancelled,
)


class TestAPIError:
    """Test APIError construction."""

    def test_creation(self):
        error = APIError("Object not found", status_code=404, code="generic_err_object_not_found")

        assert str(error) == "Object not found"
        assert error.status_code == 404
        assert error.code == "generic_err_object_not_found"
        assert error.warnings == []
        assert isinstance(error, CheckPointError)

    def test_details_lists_attached_messages(self):
        error = APIError(
            "Validation failed",
            errors=["Invalid IP"],
            warnings=["Duplicate name"],
            blocking_errors=["Locked"],
        )

        details = error.details()

        assert details.splitlines()[0] == "Validation failed"
        assert "Blocking error: Locked" in details
        assert "Error: Invalid IP" in details
        assert "Warning: Duplicate name" in details


class TestErrorCodeMapping:
    """Test server error code to class mapping."""

    @pytest.mark.parametrize(
        "code, cls",
        [
            ("generic_err_object_not_found", ObjectNotFoundError),
            ("generic_err_no_permissions", NoPermissionsError),
            ("err_forbidden", NoPermissionsError),
            ("err_login_failed", LoginFailedError),
            ("err_login_failed_wrong_username_or_password", WrongUsernameOrPasswordError),
            ("generic_err_wrong_session_id", SessionExpiredError),
            ("err_validation_failed", ValidationFailedError),
            ("some_future_code", APIError),
            (None, APIError),
        ],
    )
    def test_api_error_class(self, code, cls):
        assert api_error_class(code) is cls

    def test_wrong_password_is_a_login_failure(self):
        assert issubclass(WrongUsernameOrPasswordError, LoginFailedError)


class TestOtherErrors:
    def test_detail_level_error_message(self):
        error = DetailLevelError(DetailLevel.STANDARD, DetailLevel.FULL)

        assert "STANDARD" in str(error)
        assert "FULL" in str(error)
        assert error.actual is DetailLevel.STANDARD
        assert error.required is DetailLevel.FULL

    def test_batch_in_progress(self):
        error = BatchInProgressError("add-identity")

        assert error.active_command == "add-identity"
        assert "add-identity" in str(error)


class TestCheckCancelled:
    def test_no_event(self):
        check_cancelled(None, "show-hosts")

    def test_unset_event(self):
        check_cancelled(asyncio.Event(), "show-hosts")

    def test_set_event_raises(self):
        event = asyncio.Event()
        event.set()

        with pytest.raises(OperationCancelledError) as exc_info:
            check_cancelled(event, "show-hosts")

        assert exc_info.value.command == "show-hosts"
        assert "show-hosts" in str(exc_info.value)
