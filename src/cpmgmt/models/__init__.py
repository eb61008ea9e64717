"""Object model of the Check Point management client."""

from .base import (
    Domain,
    Field,
    GenericObject,
    Ignore,
    MembershipField,
    ObjectField,
    ObjectListField,
    ObjectSummary,
    Summary,
)
from .detail_level import DetailLevel, DetailLevelAction
from .identity import (
    AddIdentityResponse,
    ClientType,
    DeleteIdentityResponse,
    ShowIdentityResponse,
    UserResponse,
)
from .objects import (
    ALL_GW_TO_GW,
    ANY,
    POLICY_TARGETS,
    WELL_KNOWN,
    AccessLayer,
    AccessRule,
    AccessSection,
    AddressRange,
    Group,
    Host,
    Network,
    ObjectBase,
    ServiceGroup,
    ServiceTCP,
    ServiceUDP,
    Tag,
)
from .paging import PagingResult
from .reference import GenericReference, ReferenceState
from .registry import TypeRegistry, default_registry, register_type
from .tracking import ChangeAction, ChangeTracking, MembershipList

__all__ = [
    # Detail levels
    "DetailLevel",
    "DetailLevelAction",
    # Base
    "Domain",
    "Summary",
    "ObjectSummary",
    "GenericObject",
    "Ignore",
    "Field",
    "ObjectField",
    "ObjectListField",
    "MembershipField",
    # Tracking
    "ChangeTracking",
    "ChangeAction",
    "MembershipList",
    # References
    "GenericReference",
    "ReferenceState",
    # Registry
    "TypeRegistry",
    "default_registry",
    "register_type",
    # Entities
    "ObjectBase",
    "Host",
    "Network",
    "AddressRange",
    "Group",
    "Tag",
    "ServiceTCP",
    "ServiceUDP",
    "ServiceGroup",
    "AccessLayer",
    "AccessRule",
    "AccessSection",
    "ANY",
    "ALL_GW_TO_GW",
    "POLICY_TARGETS",
    "WELL_KNOWN",
    # Paging
    "PagingResult",
    # Identity Awareness
    "ClientType",
    "AddIdentityResponse",
    "ShowIdentityResponse",
    "UserResponse",
    "DeleteIdentityResponse",
]
