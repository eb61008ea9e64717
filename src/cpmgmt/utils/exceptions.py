"""Custom exceptions for the Check Point management client.

Exception Hierarchy:
-------------------
CheckPointError (base)
├── DetailLevelError            # Property read below its required detail level
├── ObjectStateError            # Save/delete/reload on an object in the wrong state
├── OperationCancelledError     # Cancellation signal seen before a network call
├── BatchInProgressError        # Identity batch already started
├── TransportError              # httpx failure after retries were exhausted
└── APIError (base for server-reported errors)
    ├── ObjectNotFoundError         # generic_err_object_not_found
    ├── NoPermissionsError          # generic_err_no_permissions / err_forbidden
    ├── LoginFailedError            # err_login_failed*
    ├── SessionExpiredError         # generic_err_session_expired / wrong session id
    ├── ValidationFailedError       # err_validation_failed / invalid parameters
    └── ...                         # one class per server error code family

Usage Guidelines:
----------------
1. Catch ObjectNotFoundError when a UID may have been deleted in the meantime.
2. Catch APIError as the catch-all for anything the server rejected.
3. TransportError means the request never produced an HTTP response.
4. Nothing at the object layer retries; the transport retries network errors only.
"""

from typing import Any


class CheckPointError(Exception):
    """Base exception for all client errors."""

    pass


class DetailLevelError(CheckPointError):
    """Raised when a property is read below the detail level it requires."""

    def __init__(self, actual: Any, required: Any) -> None:
        """
        Initialize DetailLevelError.

        Args:
            actual: Detail level the object currently holds.
            required: Detail level the property needs.
        """
        actual_name = getattr(actual, "name", str(actual))
        required_name = getattr(required, "name", str(required))
        super().__init__(
            f"Detail level of {actual_name} does not meet requirement of {required_name}"
        )
        self.actual = actual
        self.required = required


class ObjectStateError(CheckPointError):
    """Raised when an operation is invalid for the object's current state."""

    pass


class OperationCancelledError(CheckPointError):
    """Raised when a cancellation signal is set before a network call."""

    def __init__(self, command: str | None = None) -> None:
        message = f"Operation cancelled before '{command}'" if command else "Operation cancelled"
        super().__init__(message)
        self.command = command


class BatchInProgressError(CheckPointError):
    """Raised when starting an identity batch while another one is active."""

    def __init__(self, active_command: str) -> None:
        super().__init__(f"Batch already in progress: {active_command}")
        self.active_command = active_command


class TransportError(CheckPointError):
    """Raised when the HTTP request itself failed (connection, timeout)."""

    def __init__(self, message: str, command: str | None = None) -> None:
        super().__init__(message)
        self.command = command


class APIError(CheckPointError):
    """Base exception for errors reported by the management server."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        warnings: list[str] | None = None,
        errors: list[str] | None = None,
        blocking_errors: list[str] | None = None,
    ) -> None:
        """
        Initialize APIError.

        Args:
            message: Server message.
            status_code: HTTP status code of the response.
            code: Server error code (e.g. "generic_err_object_not_found").
            warnings: Warning messages attached to the response.
            errors: Error messages attached to the response.
            blocking_errors: Blocking error messages attached to the response.
        """
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.warnings = warnings or []
        self.errors = errors or []
        self.blocking_errors = blocking_errors or []

    def details(self) -> str:
        """
        Return the message followed by every attached error and warning.

        Returns:
            str: Multi-line description.
        """
        lines = [str(self.args[0]) if self.args else self.__class__.__name__]
        lines.extend(f"  Blocking error: {m}" for m in self.blocking_errors)
        lines.extend(f"  Error: {m}" for m in self.errors)
        lines.extend(f"  Warning: {m}" for m in self.warnings)
        return "\n".join(lines)


class ObjectNotFoundError(APIError):
    """The requested object does not exist (or is not visible in this domain)."""


class NoPermissionsError(APIError):
    """The administrator lacks permission for the command."""


class LoginFailedError(APIError):
    """Login was rejected."""


class WrongUsernameOrPasswordError(LoginFailedError):
    """Login was rejected because of bad credentials."""


class SessionExpiredError(APIError):
    """The session id is missing, wrong or expired."""


class SessionInUseError(APIError):
    """The session is used by another connection."""


class ValidationFailedError(APIError):
    """The server rejected the request payload."""


class InvalidParameterError(ValidationFailedError):
    """A parameter name or value is invalid."""


class MissingRequiredParametersError(ValidationFailedError):
    """A required parameter is missing."""


class ObjectLockedError(APIError):
    """The object is locked by another session."""


class ObjectFieldNotUniqueError(APIError):
    """A field that must be unique (usually the name) already exists."""


class ObjectTypeWrongError(APIError):
    """The identifier refers to an object of another type."""


class ObjectDeletionError(APIError):
    """The object cannot be deleted (usually still in use)."""


class CommandNotFoundError(APIError):
    """The command (or its version) is not known to the server."""


class PublishFailedError(APIError):
    """Publishing the session failed."""


class PolicyInstallationFailedError(APIError):
    """Policy installation failed."""


class RulebaseInvalidOperationError(APIError):
    """The rulebase operation is invalid (bad position, layer, ...)."""


class ServerError(APIError):
    """The server reported an internal error or is still initializing."""


# Server error code -> exception class.
ERROR_CODE_MAP: dict[str, type[APIError]] = {
    "generic_error": APIError,
    "generic_err_object_not_found": ObjectNotFoundError,
    "generic_err_no_permissions": NoPermissionsError,
    "err_forbidden": NoPermissionsError,
    "err_login_failed": LoginFailedError,
    "err_login_failed_more_than_one_opened_session": LoginFailedError,
    "err_login_failed_wrong_username_or_password": WrongUsernameOrPasswordError,
    "generic_err_missing_session_id": SessionExpiredError,
    "generic_err_wrong_session_id": SessionExpiredError,
    "generic_err_session_expired": SessionExpiredError,
    "generic_err_session_in_use": SessionInUseError,
    "err_validation_failed": ValidationFailedError,
    "err_normalization_failed": ValidationFailedError,
    "generic_err_invalid_syntax": ValidationFailedError,
    "generic_err_invalid_parameter": InvalidParameterError,
    "generic_err_invalid_parameter_name": InvalidParameterError,
    "generic_err_missing_required_parameters": MissingRequiredParametersError,
    "generic_err_object_locked": ObjectLockedError,
    "generic_err_object_field_not_unique": ObjectFieldNotUniqueError,
    "generic_err_object_type_wrong": ObjectTypeWrongError,
    "generic_err_object_deletion": ObjectDeletionError,
    "generic_err_command_not_found": CommandNotFoundError,
    "generic_err_command_version_not_found": CommandNotFoundError,
    "err_publish_failed": PublishFailedError,
    "err_policy_installation_failed": PolicyInstallationFailedError,
    "err_rulebase_invalid_operation": RulebaseInvalidOperationError,
    "generic_internal_error": ServerError,
    "generic_server_error": ServerError,
    "generic_server_initializing": ServerError,
}


def api_error_class(code: str | None) -> type[APIError]:
    """
    Map a server error code to its exception class.

    Args:
        code: Error code from the response body, or None.

    Returns:
        The matching APIError subclass (APIError for unknown codes).
    """
    if not code:
        return APIError
    return ERROR_CODE_MAP.get(code, APIError)


def check_cancelled(cancel: Any, command: str | None = None) -> None:
    """
    Raise OperationCancelledError when the cancel event is set.

    Args:
        cancel: asyncio.Event (or None when the call is not cancellable).
        command: Command about to be sent, for the error message.
    """
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(command)
