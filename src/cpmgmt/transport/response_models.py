"""Pydantic models for Management API responses.

Only the envelopes the client itself inspects are modelled: login, errors and
the paging window of "show-*" list commands. Object payloads go through the
object converter instead.

Design Principles:
- Graceful degradation: extra="allow" for unknown fields
- Wire names kept through Field aliases ("session-timeout", "from", ...)
"""

from typing import Any

from pydantic import BaseModel, Field

from ..constants import PAGED_ITEM_FIELDS


class LoginResponse(BaseModel):
    """Response from the "login" command.

    Attributes:
        sid: Session id, sent as X-chkp-sid on every later request
        uid: Uid of the management session object
        session_timeout: Idle seconds before the server expires the session
        api_server_version: Management API version of the server
    """

    sid: str = Field(..., description="Session id")
    uid: str | None = Field(None, description="Session object uid")
    url: str | None = None
    session_timeout: int | None = Field(None, alias="session-timeout")
    api_server_version: str | None = Field(None, alias="api-server-version")
    read_only: bool | None = Field(None, alias="read-only")

    model_config = {"extra": "allow", "populate_by_name": True}


class ErrorDetail(BaseModel):
    """One entry of "warnings", "errors" or "blocking-errors"."""

    message: str | None = None
    current_session: bool | None = Field(None, alias="current-session")

    model_config = {"extra": "allow", "populate_by_name": True}


class ErrorResponse(BaseModel):
    """Error body returned with any non-2xx status.

    Attributes:
        code: Error code (e.g. "generic_err_object_not_found")
        message: Primary error message
    """

    code: str | None = None
    message: str | None = None
    warnings: list[ErrorDetail] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)
    blocking_errors: list[ErrorDetail] = Field(default_factory=list, alias="blocking-errors")

    model_config = {"extra": "allow", "populate_by_name": True}

    def get_message(self) -> str:
        """Primary message, falling back to the first attached error."""
        if self.message:
            return self.message
        for detail in (*self.blocking_errors, *self.errors):
            if detail.message:
                return detail.message
        return "Unknown error"

    @staticmethod
    def messages(details: list[ErrorDetail]) -> list[str]:
        return [d.message for d in details if d.message]


class PagingEnvelope(BaseModel):
    """Window fields of a "show-*" list response (1-based, inclusive)."""

    from_: int = Field(0, alias="from", ge=0)
    to: int = Field(0, ge=0)
    total: int = Field(0, ge=0)

    model_config = {"extra": "allow", "populate_by_name": True}

    def get_items(self, data: dict[str, Any], items_field: str | None = None) -> list[Any]:
        """
        Extract the items array of the response.

        Args:
            data: Raw response.
            items_field: Field name for this command; when None the common
                array fields are tried in order.

        Returns:
            The items (an empty list when none is present).
        """
        if items_field is not None:
            items = data.get(items_field)
            return items if isinstance(items, list) else []
        for key in PAGED_ITEM_FIELDS:
            items = data.get(key)
            if isinstance(items, list):
                return items
        return []
