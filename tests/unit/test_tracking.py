"""Unit tests for change tracking and membership lists."""

import pytest

from cpmgmt.models.detail_level import DetailLevel
from cpmgmt.models.objects import Group, Host
from cpmgmt.models.tracking import ChangeAction
from cpmgmt.utils.exceptions import DetailLevelError, ObjectStateError


def _server_host(uid: str, name: str = "web01") -> Host:
    host = Host.from_server(None, DetailLevel.FULL)
    host.populate(
        {"uid": uid, "name": name, "type": "host", "ipv4-address": "10.0.0.1"},
        detail_level=DetailLevel.FULL,
    )
    return host


def _server_group(uid: str, members: list[str] | None = None) -> Group:
    group = Group.from_server(None, DetailLevel.FULL)
    data = {"uid": uid, "name": "servers", "type": "group"}
    if members is not None:
        data["members"] = members
    group.populate(data, detail_level=DetailLevel.FULL)
    return group


class TestChangeTracking:
    """Test field-level change recording."""

    def test_new_object_records_name(self):
        host = Host(name="web01")

        assert host.is_new is True
        assert host.changed_fields == ("name",)

    def test_populated_object_has_no_changes(self, make_uid):
        host = _server_host(make_uid(1))

        assert host.is_new is False
        assert host.is_changed is False
        assert host.build_diff() == {}

    def test_failed_population_keeps_tracking(self, make_uid):
        host = _server_host(make_uid(1))

        with pytest.raises(TypeError):
            host.populate({"uid": make_uid(1), "tags": 5}, detail_level=DetailLevel.FULL)
        host.groups.add("g1")

        assert host.is_changed is True
        assert host.build_diff() == {"groups": {"add": ["g1"]}}

    def test_failed_population_of_new_object_stays_new(self):
        host = Host(name="web01")

        with pytest.raises(TypeError):
            host.populate({"tags": 5})

        assert host.is_new is True
        assert host.changed_fields == ("name",)

    def test_repeated_sets_record_once(self, make_uid):
        host = _server_host(make_uid(1))

        for i in range(5):
            host.ipv4_address = f"10.0.0.{i}"

        assert host.changed_fields == ("ipv4-address",)
        assert host.build_diff() == {"ipv4-address": "10.0.0.4"}

    def test_diff_is_exactly_the_changed_fields(self, make_uid):
        host = _server_host(make_uid(1))

        host.ipv4_address = "10.1.1.1"
        host.comments = "first"
        host.comments = "final"

        assert host.build_diff() == {"ipv4-address": "10.1.1.1", "comments": "final"}

    def test_clear_tracking(self, make_uid):
        host = _server_host(make_uid(1))
        host.color = "red"

        host.clear_tracking()

        assert host.is_changed is False
        assert host.color == "red"

    def test_tracking_suspended(self, make_uid):
        host = _server_host(make_uid(1))

        with host.tracking_suspended():
            assert host.is_tracking_suspended
            host.color = "blue"

        assert host.is_tracking_suspended is False
        assert host.is_changed is False

    def test_populating_clears_previous_changes(self, make_uid):
        host = _server_host(make_uid(1))
        host.color = "red"

        host.populate({"uid": make_uid(1), "color": "green"}, detail_level=DetailLevel.FULL)

        assert host.is_changed is False
        assert host.color == "green"


class TestMembershipList:
    """Test add/remove/set tracking of groups and members."""

    def test_add_on_existing_object(self, make_uid):
        group = _server_group(make_uid(1), members=["a", "b"])

        group.members.add("c")

        assert group.members.action is ChangeAction.ADD
        assert group.build_diff() == {"members": {"add": ["c"]}}
        # Loaded members are unchanged until reload
        assert list(group.members) == ["a", "b"]

    def test_remove_on_existing_object(self, make_uid):
        group = _server_group(make_uid(1), members=["a", "b"])

        assert group.members.remove("a") is True

        assert group.build_diff() == {"members": {"remove": ["a"]}}

    def test_add_on_new_object_sets_full_list(self):
        group = Group(name="servers")

        group.members.add("a")
        group.members.add("b")

        assert group.members.action is ChangeAction.SET
        assert group.build_diff() == {"name": "servers", "members": ["a", "b"]}

    def test_remove_pending_add_on_new_object(self):
        group = Group(name="servers")
        group.members.add("a")
        group.members.add("b")

        assert group.members.remove("a") is True
        assert group.members.remove("zzz") is False
        assert group.members.to_payload() == ["b"]

    def test_remove_then_add_builds_replacement(self, make_uid):
        group = _server_group(make_uid(1), members=["a", "b"])

        group.members.remove("a")
        group.members.add("c")

        assert group.members.action is ChangeAction.SET
        assert group.members.to_payload() == ["b", "c"]

    def test_add_then_remove_builds_replacement(self, make_uid):
        group = _server_group(make_uid(1), members=["a", "b"])

        group.members.add("c")
        assert group.members.remove("a") is True

        assert group.members.to_payload() == ["b", "c"]

    def test_mixed_changes_need_loaded_members(self, make_uid):
        group = _server_group(make_uid(1))
        assert group.members.loaded is False

        group.members.remove("a")

        with pytest.raises(DetailLevelError):
            group.members.add("c")

    def test_clear(self, make_uid):
        group = _server_group(make_uid(1), members=["a"])

        group.members.clear()

        assert group.build_diff() == {"members": []}

    def test_assignment_replaces_membership(self, make_uid):
        group = _server_group(make_uid(1), members=["a"])

        group.members = ["x", "y"]

        assert group.build_diff() == {"members": ["x", "y"]}

    def test_add_object_uses_membership_id(self, make_uid):
        group = _server_group(make_uid(1), members=[])
        host = _server_host(make_uid(2), name="web01")

        group.members.add(host)

        assert group.members.to_payload() == {"add": ["web01"]}

    def test_add_renamed_object_uses_uid(self, make_uid):
        group = _server_group(make_uid(1), members=[])
        host = _server_host(make_uid(2), name="web01")
        host.name = "web02"

        group.members.add(host)

        assert group.members.to_payload() == {"add": [make_uid(2)]}

    def test_add_unsaved_object_raises(self, make_uid):
        group = _server_group(make_uid(1), members=[])

        with pytest.raises(ObjectStateError):
            group.members.add(Host(name="not-saved"))

    def test_membership_changes_count_as_changed(self, make_uid):
        group = _server_group(make_uid(1), members=[])
        group.members.add("a")

        assert group.is_changed is True
        assert group.changed_fields == ()

        group.clear_tracking()

        assert group.is_changed is False
        assert group.members.action is ChangeAction.NONE
