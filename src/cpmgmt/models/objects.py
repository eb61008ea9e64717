"""Concrete management objects.

Each class declares the wire fields it maps and the detail level each one
needs. Anything else the server returns is kept in ObjectSummary.extra, so
new server fields never break deserialization.
"""

from typing import Any

from ..constants import ALL_GW_TO_GW_UID, ANY_UID, POLICY_TARGETS_UID
from .base import (
    Domain,
    Field,
    GenericObject,
    MembershipField,
    ObjectField,
    ObjectListField,
    ObjectSummary,
)
from .detail_level import DetailLevel
from .registry import register_type


class ObjectBase(ObjectSummary):
    """Fields every network object carries at full detail."""

    color = Field("color", DetailLevel.FULL)
    comments = Field("comments", DetailLevel.FULL)
    tags = ObjectListField("tags", DetailLevel.FULL)


@register_type
class Tag(ObjectBase):
    type_name = "tag"
    list_command = "show-tags"


# -----------------------------------------------------------------------------
# Network objects
# -----------------------------------------------------------------------------


@register_type
class Host(ObjectBase):
    type_name = "host"
    list_command = "show-hosts"

    ipv4_address = Field("ipv4-address")
    ipv6_address = Field("ipv6-address")
    nat_settings = Field("nat-settings", DetailLevel.FULL)
    groups = MembershipField("groups", DetailLevel.FULL)


@register_type
class Network(ObjectBase):
    type_name = "network"
    list_command = "show-networks"

    subnet4 = Field("subnet4")
    mask_length4 = Field("mask-length4")
    subnet6 = Field("subnet6")
    mask_length6 = Field("mask-length6")
    broadcast = Field("broadcast", DetailLevel.FULL)
    nat_settings = Field("nat-settings", DetailLevel.FULL)
    groups = MembershipField("groups", DetailLevel.FULL)


@register_type
class AddressRange(ObjectBase):
    type_name = "address-range"
    list_command = "show-address-ranges"

    ipv4_address_first = Field("ipv4-address-first")
    ipv4_address_last = Field("ipv4-address-last")
    ipv6_address_first = Field("ipv6-address-first")
    ipv6_address_last = Field("ipv6-address-last")
    nat_settings = Field("nat-settings", DetailLevel.FULL)
    groups = MembershipField("groups", DetailLevel.FULL)


@register_type
class Group(ObjectBase):
    type_name = "group"
    list_command = "show-groups"

    members = MembershipField("members", DetailLevel.FULL)
    groups = MembershipField("groups", DetailLevel.FULL)


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------


class ServiceBase(ObjectBase):
    port = Field("port")
    protocol = Field("protocol", DetailLevel.FULL)
    source_port = Field("source-port", DetailLevel.FULL)
    session_timeout = Field("session-timeout", DetailLevel.FULL)
    match_for_any = Field("match-for-any", DetailLevel.FULL)
    groups = MembershipField("groups", DetailLevel.FULL)


@register_type
class ServiceTCP(ServiceBase):
    type_name = "service-tcp"
    list_command = "show-services-tcp"


@register_type
class ServiceUDP(ServiceBase):
    type_name = "service-udp"
    list_command = "show-services-udp"


@register_type
class ServiceGroup(ObjectBase):
    type_name = "service-group"
    list_command = "show-service-groups"

    members = MembershipField("members", DetailLevel.FULL)
    groups = MembershipField("groups", DetailLevel.FULL)


# -----------------------------------------------------------------------------
# Access control
# -----------------------------------------------------------------------------


@register_type
class AccessLayer(ObjectBase):
    type_name = "access-layer"
    list_command = "show-access-layers"

    applications_and_url_filtering = Field("applications-and-url-filtering", DetailLevel.FULL)
    firewall = Field("firewall", DetailLevel.FULL)
    shared = Field("shared", DetailLevel.FULL)


@register_type
class AccessRule(ObjectBase):
    """
    Rule of an access layer.

    Rules are addressed by uid together with their layer, so every show-,
    set- and delete- request carries the layer as well. New rules are placed
    at position (default "top").
    """

    type_name = "access-rule"

    layer = ObjectField("layer", DetailLevel.STANDARD, AccessLayer)
    position = Field("position", DetailLevel.UID)
    action = ObjectField("action", DetailLevel.FULL)
    enabled = Field("enabled", DetailLevel.FULL)
    source = ObjectListField("source", DetailLevel.FULL)
    source_negate = Field("source-negate", DetailLevel.FULL)
    destination = ObjectListField("destination", DetailLevel.FULL)
    destination_negate = Field("destination-negate", DetailLevel.FULL)
    service = ObjectListField("service", DetailLevel.FULL)
    service_negate = Field("service-negate", DetailLevel.FULL)
    install_on = ObjectListField("install-on", DetailLevel.FULL)
    time = ObjectListField("time", DetailLevel.FULL)

    def __init__(
        self,
        session: Any = None,
        detail_level: DetailLevel = DetailLevel.FULL,
        name: str | None = None,
        layer: Any = None,
    ) -> None:
        super().__init__(session, detail_level, name)
        if layer is not None:
            self.layer = layer
            self.position = "top"

    def _identity_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"uid": self.uid}
        layer = AccessRule.layer.raw(self)
        if layer is not None:
            payload["layer"] = AccessRule.layer.dump(layer)
        return payload


@register_type
class AccessSection(ObjectSummary):
    type_name = "access-section"

    layer = ObjectField("layer", DetailLevel.STANDARD, AccessLayer)
    rulebase = ObjectListField("rulebase", DetailLevel.STANDARD, AccessRule)


# -----------------------------------------------------------------------------
# Well-known objects
# -----------------------------------------------------------------------------


def _well_known(uid: str, name: str, type_name: str) -> GenericObject:
    obj = GenericObject.from_server(None, DetailLevel.FULL)
    obj.populate({"uid": uid, "name": name, "type": type_name, "domain": Domain.DATA_DOMAIN.uid})
    return obj


ANY = _well_known(ANY_UID, "Any", "CpmiAnyObject")
ALL_GW_TO_GW = _well_known(ALL_GW_TO_GW_UID, "All_GwToGw", "CpmiAnyObject")
POLICY_TARGETS = _well_known(POLICY_TARGETS_UID, "Policy Targets", "Global")

# uid -> shared instance; the converter returns these instead of placeholders
WELL_KNOWN: dict[str, GenericObject] = {obj.uid: obj for obj in (ANY, ALL_GW_TO_GW, POLICY_TARGETS)}
