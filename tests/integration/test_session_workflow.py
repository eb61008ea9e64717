"""Integration tests for a full management session against a mocked server."""

import json

import pytest
import respx
from httpx import Response

from cpmgmt.config import IdentityAwarenessConfig, ManagementConfig
from cpmgmt.core.exporter import ObjectExporter
from cpmgmt.ia.session import IdentityAwarenessSession
from cpmgmt.models.objects import Group, Host
from cpmgmt.observability.metrics import MetricsCollector
from cpmgmt.session import Session
from cpmgmt.transport.client import ManagementClient

BASE_URL = "https://mgmt.example.com/web_api/"
IA_URL = "https://gw.example.com/_IA_API/v1.0/"
SID = "sid-0123456789"

pytestmark = pytest.mark.integration


def _uid(n: int) -> str:
    return f"{n:08x}-0000-4000-8000-000000000000"


def _host(n: int) -> dict:
    return {"uid": _uid(n), "name": f"host-{n}", "type": "host", "ipv4-address": f"10.1.0.{n}"}


def _body(request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def server():
    """Mocked management server with 5 hosts served in pages of 2."""
    hosts = [_host(n) for n in range(1, 6)]

    with respx.mock(base_url=BASE_URL, assert_all_called=False) as api:
        api.post("login", name="login").mock(
            return_value=Response(
                200, json={"sid": SID, "api-server-version": "1.9", "session-timeout": 600}
            )
        )
        api.post("logout", name="logout").mock(
            return_value=Response(200, json={"message": "OK"})
        )
        api.post("publish", name="publish").mock(
            return_value=Response(200, json={"task-id": "task-1"})
        )

        def show_hosts(request):
            body = _body(request)
            offset, limit = body["offset"], body["limit"]
            page = hosts[offset : offset + limit]
            return Response(
                200,
                json={
                    "objects": page,
                    "from": offset + 1 if page else 0,
                    "to": offset + len(page),
                    "total": len(hosts),
                },
            )

        api.post("show-hosts", name="show-hosts").mock(side_effect=show_hosts)

        def add_host(request):
            body = _body(request)
            return Response(200, json={**body, "uid": _uid(99), "type": "host"})

        api.post("add-host", name="add-host").mock(side_effect=add_host)

        def show_object(request):
            uid = _body(request)["uid"]
            match = [h for h in hosts if h["uid"] == uid]
            if not match:
                return Response(
                    404,
                    json={"code": "generic_err_object_not_found", "message": "Not found"},
                )
            return Response(200, json={"object": match[0]})

        api.post("show-object", name="show-object").mock(side_effect=show_object)

        api.post("show-group", name="show-group").mock(
            return_value=Response(
                200,
                json={
                    "uid": _uid(100),
                    "name": "web-servers",
                    "type": "group",
                    "members": [_uid(1), _uid(2), _uid(77)],
                },
            )
        )
        yield api


@pytest.fixture
def config():
    return ManagementConfig(server="mgmt.example.com", user="admin", password="secret")


class TestSessionWorkflow:
    """Test login, paging, saving and publishing end to end."""

    @pytest.mark.asyncio
    async def test_list_create_publish(self, server, config):
        collector = MetricsCollector()
        transport = ManagementClient(config, collector=collector)

        async with Session(config, transport=transport) as session:
            hosts = await session.find_all_hosts(limit=2)

            web = Host(session, name="web01")
            web.ipv4_address = "10.1.0.50"
            web.comments = "created by workflow"
            await web.save()

            task_id = await session.publish()

        assert [h.name for h in hosts] == [f"host-{n}" for n in range(1, 6)]
        assert all(isinstance(h, Host) for h in hosts)
        assert server["show-hosts"].call_count == 3

        add_body = _body(server["add-host"].calls.last.request)
        assert add_body["name"] == "web01"
        assert add_body["ipv4-address"] == "10.1.0.50"
        assert add_body["details-level"] == "full"
        assert web.uid == _uid(99)
        assert not web.is_new
        assert task_id == "task-1"

        login_request = server["login"].calls.last.request
        assert "X-chkp-sid" not in login_request.headers
        assert server["publish"].calls.last.request.headers["X-chkp-sid"] == SID
        assert server["logout"].called
        assert transport.sid is None

        counters = collector.get_summary()["counters"]
        assert counters["cpmgmt_api_requests_total[command=show-hosts,status=ok]"] == 3

    @pytest.mark.asyncio
    async def test_export_group(self, server, config):
        async with Session(config) as session:
            group = await session.find_group("web-servers")
            exporter = ObjectExporter(session)
            await exporter.add(group)

        assert isinstance(group, Group)
        assert _body(server["show-group"].calls.last.request)["name"] == "web-servers"
        assert set(exporter.objects) == {_uid(100), _uid(1), _uid(2)}
        assert exporter.skipped == [_uid(77)]

        document = json.loads(exporter.export())
        names = sorted(o["name"] for o in document["objects"])
        assert names == ["host-1", "host-2", "web-servers"]


class TestIdentityAwarenessWorkflow:
    @pytest.mark.asyncio
    async def test_batched_adds(self):
        config = IdentityAwarenessConfig(
            gateway="gw.example.com", shared_secret="s3cr3t", max_batch_size=3
        )
        responses = []

        with respx.mock(base_url=IA_URL) as api:

            def add_identity(request):
                body = _body(request)
                return Response(
                    200,
                    json={
                        "responses": [
                            {"ipv4-address": r["ip-address"], "message": "Association sent to PDP."}
                            for r in body["requests"]
                        ]
                    },
                )

            route = api.post("add-identity").mock(side_effect=add_identity)

            async with IdentityAwarenessSession(config) as ia:
                ia.start_add_batch(output=responses.append)
                for n in range(1, 5):
                    await ia.add_identity(f"10.2.0.{n}", user=f"user{n}", fetch_user_groups=True)
                await ia.flush(stop_batch=True)

        assert route.call_count == 2
        first = _body(route.calls[0].request)
        assert first["shared-secret"] == "s3cr3t"
        assert len(first["requests"]) == 3
        assert first["requests"][0]["fetch-user-groups"] == 1
        assert len(responses) == 4
