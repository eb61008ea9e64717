"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Config fixtures: management and Identity Awareness configuration
- Mock fixtures: transports with canned responses, sessions built on them
- Data fixtures: uid and payload factories
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from cpmgmt.config import IdentityAwarenessConfig, ManagementConfig
from cpmgmt.models.detail_level import DetailLevelAction
from cpmgmt.observability.metrics import MetricsCollector
from cpmgmt.session import Session
from cpmgmt.transport.client import HttpTransport, ManagementClient

# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def management_config() -> ManagementConfig:
    """Management config pointing at a fake server."""
    return ManagementConfig(server="mgmt.example.com", user="admin", password="secret")


@pytest.fixture
def ia_config() -> IdentityAwarenessConfig:
    """Identity Awareness config with the default batch size of 20."""
    return IdentityAwarenessConfig(gateway="gw.example.com", shared_secret="s3cr3t")


# =============================================================================
# Data Fixtures
# =============================================================================


def _uid(n: int) -> str:
    return f"{n:08x}-0000-4000-8000-000000000000"


@pytest.fixture
def make_uid():
    """Factory for deterministic canonical uids.

    Example:
        def test_something(make_uid):
            uid = make_uid(1)  # "00000001-0000-4000-8000-000000000000"
    """
    return _uid


@pytest.fixture
def host_payload():
    """Factory for "host" payloads as the server returns them."""

    def build(n: int, **extra: Any) -> dict[str, Any]:
        data = {
            "uid": _uid(n),
            "name": f"host-{n}",
            "type": "host",
            "ipv4-address": f"10.0.{n // 256}.{n % 256}",
        }
        data.update(extra)
        return data

    return build


@pytest.fixture
def make_page():
    """Factory for one page of a list response.

    The window is 1-based and inclusive, the way the server reports it.
    """

    def build(
        items: list[Any], offset: int, total: int, items_field: str = "objects"
    ) -> dict[str, Any]:
        if not items:
            return {items_field: [], "from": 0, "to": 0, "total": total}
        return {
            items_field: items,
            "from": offset + 1,
            "to": offset + len(items),
            "total": total,
        }

    return build


# =============================================================================
# Mock Transport / Session Fixtures
# =============================================================================


@pytest.fixture
def mock_transport() -> AsyncMock:
    """Create a mock management transport.

    Returns an AsyncMock with spec=ManagementClient; post() and post_sync()
    return {} unless a test overrides them.

    Example:
        def test_something(mock_transport):
            mock_transport.post.return_value = {"uid": "...", "type": "host"}
    """
    transport = AsyncMock(spec=ManagementClient)
    transport.post.return_value = {}
    transport.post_sync.return_value = {}
    return transport


@pytest.fixture
def session(management_config, mock_transport) -> Session:
    """Session whose requests go to mock_transport."""
    return Session(management_config, transport=mock_transport)


@pytest.fixture
def auto_reload_session(mock_transport) -> Session:
    """Session reloading objects when a property needs more detail."""
    config = ManagementConfig(
        server="mgmt.example.com",
        user="admin",
        password="secret",
        detail_level_action=DetailLevelAction.AUTO_RELOAD,
    )
    return Session(config, transport=mock_transport)


@pytest.fixture
def mock_ia_transport() -> AsyncMock:
    """Create a mock Identity Awareness transport with its own collector."""
    transport = AsyncMock(spec=HttpTransport)
    transport.collector = MetricsCollector()
    transport.post.return_value = {}
    return transport


@pytest.fixture
def routed_post():
    """Build a post() side effect answering by command name.

    Each value is either a response dict or a callable taking the payload.
    Unknown commands fail the test.
    """

    def build(routes: dict[str, Any]) -> Callable[..., Any]:
        def respond(command, payload=None, cancel=None):
            if command not in routes:
                raise AssertionError(f"Unexpected command {command!r}")
            route = routes[command]
            return route(payload or {}) if callable(route) else route

        return respond

    return build
