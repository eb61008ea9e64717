"""HTTP transport and response envelopes."""

from .client import HttpTransport, ManagementClient, create_api_error
from .response_models import ErrorResponse, LoginResponse, PagingEnvelope

__all__ = [
    "HttpTransport",
    "ManagementClient",
    "create_api_error",
    "ErrorResponse",
    "LoginResponse",
    "PagingEnvelope",
]
