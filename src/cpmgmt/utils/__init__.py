"""Utility functions and exceptions."""

from .exceptions import (
    APIError,
    BatchInProgressError,
    CheckPointError,
    DetailLevelError,
    NoPermissionsError,
    ObjectNotFoundError,
    ObjectStateError,
    OperationCancelledError,
    SessionExpiredError,
    TransportError,
    check_cancelled,
)
from .identifiers import Identifier, classify, is_uid, lookup_field

__all__ = [
    "CheckPointError",
    "DetailLevelError",
    "ObjectStateError",
    "OperationCancelledError",
    "BatchInProgressError",
    "TransportError",
    "APIError",
    "ObjectNotFoundError",
    "NoPermissionsError",
    "SessionExpiredError",
    "check_cancelled",
    "Identifier",
    "classify",
    "is_uid",
    "lookup_field",
]
