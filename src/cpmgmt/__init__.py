"""Check Point management API client - async object model over the web API."""

from .config import ClientConfig, IdentityAwarenessConfig, ManagementConfig, load_config
from .core.exporter import ObjectExporter
from .ia.session import IdentityAwarenessSession
from .models import DetailLevel, DetailLevelAction, GenericReference, Ignore
from .session import Session

__version__ = "0.1.0"
__all__ = [
    "Session",
    "IdentityAwarenessSession",
    "ObjectExporter",
    "ManagementConfig",
    "IdentityAwarenessConfig",
    "ClientConfig",
    "load_config",
    "DetailLevel",
    "DetailLevelAction",
    "GenericReference",
    "Ignore",
]
