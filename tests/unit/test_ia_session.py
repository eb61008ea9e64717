"""Unit tests for the Identity Awareness session and its batch buffer."""

import asyncio

import pytest

from cpmgmt.ia.session import IdentityAwarenessSession
from cpmgmt.models.identity import (
    AddIdentityResponse,
    ClientType,
    DeleteIdentityResponse,
    ShowIdentityResponse,
)
from cpmgmt.utils.exceptions import BatchInProgressError


@pytest.fixture
def ia_session(ia_config, mock_ia_transport):
    return IdentityAwarenessSession(ia_config, transport=mock_ia_transport)


@pytest.fixture
def echo_batches(mock_ia_transport):
    """Answer each batch with one response per request."""

    def respond(command, body=None, cancel=None):
        return {"responses": [{"ipv4-address": r["ip-address"]} for r in body["requests"]]}

    mock_ia_transport.post.side_effect = respond


def _bodies(transport):
    return [c.args[1] for c in transport.post.call_args_list]


class TestSingleRequests:
    """Test requests sent outside a batch."""

    @pytest.mark.asyncio
    async def test_add_identity(self, ia_session, mock_ia_transport):
        mock_ia_transport.post.return_value = {"ipv4-address": "10.0.0.1", "message": "ok"}

        result = await ia_session.add_identity(
            "10.0.0.1",
            user="alice",
            domain="corp.example.com",
            fetch_user_groups=True,
            calculate_roles=False,
            roles=("admins", "dev"),
        )

        assert isinstance(result, AddIdentityResponse)
        assert result.ipv4_address == "10.0.0.1"
        mock_ia_transport.post.assert_awaited_once_with(
            "add-identity",
            {
                "ip-address": "10.0.0.1",
                "user": "alice",
                "domain": "corp.example.com",
                "session-timeout": 43200,
                "fetch-user-groups": 1,
                "calculate-roles": 0,
                "roles": ["admins", "dev"],
                "shared-secret": "s3cr3t",
            },
            cancel=None,
        )

    @pytest.mark.asyncio
    async def test_show_identity(self, ia_session, mock_ia_transport):
        mock_ia_transport.post.return_value = {
            "ipv4-address": "10.0.0.1",
            "users": [{"user": "alice", "groups": ["dev"], "identity-source": "ida-api"}],
            "combined-roles": ["admins"],
        }

        result = await ia_session.show_identity("10.0.0.1")

        assert isinstance(result, ShowIdentityResponse)
        assert result.users[0].user == "alice"
        assert result.users[0].identity_source == "ida-api"
        assert result.combined_roles == ["admins"]

    @pytest.mark.asyncio
    async def test_delete_identity(self, ia_session, mock_ia_transport):
        mock_ia_transport.post.return_value = {"count": 1}

        result = await ia_session.delete_identity("10.0.0.1", ClientType.IDA_API)

        assert isinstance(result, DeleteIdentityResponse)
        assert result.count == 1
        assert _bodies(mock_ia_transport)[0] == {
            "client-type": "ida-api",
            "ip-address": "10.0.0.1",
            "shared-secret": "s3cr3t",
        }

    @pytest.mark.asyncio
    async def test_delete_identity_mask(self, ia_session, mock_ia_transport):
        mock_ia_transport.post.return_value = {"count": 12}

        await ia_session.delete_identity_mask("10.0.0.0", "255.255.255.0")

        body = _bodies(mock_ia_transport)[0]
        assert body["revoke-method"] == "mask"
        assert body["subnet-mask"] == "255.255.255.0"
        assert body["client-type"] == "any"

    @pytest.mark.asyncio
    async def test_delete_identity_range(self, ia_session, mock_ia_transport):
        mock_ia_transport.post.return_value = {"count": 3}

        await ia_session.delete_identity_range("10.0.0.1", "10.0.0.3", "vpn")

        body = _bodies(mock_ia_transport)[0]
        assert body["revoke-method"] == "range"
        assert body["ip-address-first"] == "10.0.0.1"
        assert body["ip-address-last"] == "10.0.0.3"
        assert body["client-type"] == "vpn"


class TestBatching:
    """Test the shared request buffer."""

    @pytest.mark.asyncio
    async def test_25_adds_with_batch_size_20(self, ia_session, mock_ia_transport, echo_batches):
        """The 20th add flushes automatically; flush() sends the remaining 5."""
        outputs = []
        ia_session.start_add_batch(output=outputs.append)

        for i in range(25):
            assert await ia_session.add_identity(f"10.0.0.{i}", user=f"user{i}") is None
            if i == 18:
                mock_ia_transport.post.assert_not_awaited()
            if i == 19:
                assert mock_ia_transport.post.await_count == 1

        assert mock_ia_transport.post.await_count == 1
        assert ia_session.pending_count == 5

        flushed = await ia_session.flush()

        assert len(flushed) == 5
        assert ia_session.pending_count == 0
        assert mock_ia_transport.post.await_count == 2
        first, second = _bodies(mock_ia_transport)
        assert len(first["requests"]) == 20
        assert len(second["requests"]) == 5
        assert first["shared-secret"] == "s3cr3t"
        assert "shared-secret" not in first["requests"][0]
        assert [o.ipv4_address for o in outputs] == [f"10.0.0.{i}" for i in range(25)]

    @pytest.mark.asyncio
    async def test_batch_metrics(self, ia_session, mock_ia_transport, echo_batches):
        ia_session.start_add_batch(max_batch_size=2)
        for i in range(3):
            await ia_session.add_identity(f"10.0.0.{i}")
        await ia_session.flush()

        counters = mock_ia_transport.collector.get_summary()["counters"]
        assert counters["cpmgmt_ia_batches_total[command=add-identity]"] == 2
        assert counters["cpmgmt_ia_batch_requests_total[command=add-identity]"] == 3

    @pytest.mark.asyncio
    async def test_concurrent_adds_are_sent_once(
        self, ia_session, mock_ia_transport, echo_batches
    ):
        ia_session.start_add_batch()

        await asyncio.gather(*(ia_session.add_identity(f"10.0.1.{i}") for i in range(40)))

        sent = [r["ip-address"] for body in _bodies(mock_ia_transport) for r in body["requests"]]
        assert mock_ia_transport.post.await_count == 2
        assert sorted(sent) == sorted(f"10.0.1.{i}" for i in range(40))
        assert ia_session.pending_count == 0

    @pytest.mark.asyncio
    async def test_other_commands_are_not_buffered(self, ia_session, mock_ia_transport):
        mock_ia_transport.post.return_value = {"ipv4-address": "10.0.0.1"}
        ia_session.start_add_batch()

        result = await ia_session.show_identity("10.0.0.1")

        assert isinstance(result, ShowIdentityResponse)
        assert mock_ia_transport.post.call_args.args[0] == "show-identity"
        assert ia_session.pending_count == 0

    @pytest.mark.asyncio
    async def test_delete_batch(self, ia_session, mock_ia_transport):
        mock_ia_transport.post.return_value = {"responses": [{"count": 1}, {"count": 0}]}
        ia_session.start_delete_batch()

        await ia_session.delete_identity("10.0.0.1")
        await ia_session.delete_identity("10.0.0.2")
        responses = await ia_session.flush()

        assert [r.count for r in responses] == [1, 0]
        assert mock_ia_transport.post.call_args.args[0] == "delete-identity"

    def test_second_batch_is_rejected(self, ia_session):
        ia_session.start_add_batch()

        with pytest.raises(BatchInProgressError) as exc_info:
            ia_session.start_show_batch()

        assert exc_info.value.active_command == "add-identity"

    def test_invalid_batch_size(self, ia_session):
        with pytest.raises(ValueError):
            ia_session.start_add_batch(max_batch_size=0)

        assert ia_session.is_batching is False

    @pytest.mark.asyncio
    async def test_flush_empty_buffer(self, ia_session, mock_ia_transport):
        ia_session.start_add_batch()

        assert await ia_session.flush() == []

        mock_ia_transport.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_flush_and_stop(self, ia_session, mock_ia_transport, echo_batches):
        ia_session.start_add_batch()
        await ia_session.add_identity("10.0.0.1")

        await ia_session.flush(stop_batch=True)

        assert ia_session.is_batching is False
        mock_ia_transport.post.side_effect = None
        mock_ia_transport.post.return_value = {"ipv4-address": "10.0.0.2"}
        result = await ia_session.add_identity("10.0.0.2")
        assert isinstance(result, AddIdentityResponse)
        # A new batch may start once the previous one stopped
        ia_session.start_show_batch()

    @pytest.mark.asyncio
    async def test_reset_batch(self, ia_session, mock_ia_transport):
        ia_session.start_add_batch()
        await ia_session.add_identity("10.0.0.1")

        await ia_session.reset_batch(stop_batch=True)

        assert ia_session.pending_count == 0
        assert ia_session.is_batching is False
        mock_ia_transport.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close(self, ia_session, mock_ia_transport):
        ia_session.start_add_batch()
        await ia_session.add_identity("10.0.0.1")

        async with ia_session:
            pass

        mock_ia_transport.close.assert_awaited_once()
