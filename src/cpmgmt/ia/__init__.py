"""Identity Awareness web API client."""

from .session import IdentityAwarenessSession

__all__ = ["IdentityAwarenessSession"]
