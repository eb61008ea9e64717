"""Pydantic models for Identity Awareness API responses.

Unknown fields are kept (extra="allow") so gateways running newer versions
do not break parsing.
"""

from enum import Enum

from pydantic import BaseModel, Field


class ClientType(str, Enum):
    """Source of an identity, used to scope delete-identity requests."""

    ANY = "any"
    CAPTIVE_PORTAL = "captive-portal"
    IDA_AGENT = "ida-agent"
    VPN = "vpn"
    AD_QUERY = "ad-query"
    MULTIHOST_AGENT = "multihost-agent"
    RADIUS = "radius"
    IDA_API = "ida-api"
    IDENTITY_COLLECTOR = "identity-collector"


class AddIdentityResponse(BaseModel):
    """Response to add-identity.

    Attributes:
        ipv4_address: Address the identity was bound to
        ipv6_address: IPv6 address the identity was bound to
        message: Result message from the gateway
    """

    ipv4_address: str | None = Field(None, alias="ipv4-address")
    ipv6_address: str | None = Field(None, alias="ipv6-address")
    message: str | None = None

    model_config = {"extra": "allow", "populate_by_name": True}


class UserResponse(BaseModel):
    """One user logged in from the queried address."""

    user: str | None = None
    groups: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    identity_source: str | None = Field(None, alias="identity-source")

    model_config = {"extra": "allow", "populate_by_name": True}


class ShowIdentityResponse(BaseModel):
    """Response to show-identity."""

    ipv4_address: str | None = Field(None, alias="ipv4-address")
    ipv6_address: str | None = Field(None, alias="ipv6-address")
    machine: str | None = None
    machine_groups: list[str] = Field(default_factory=list, alias="machine-groups")
    machine_identity_source: str | None = Field(None, alias="machine-identity-source")
    combined_roles: list[str] = Field(default_factory=list, alias="combined-roles")
    users: list[UserResponse] = Field(default_factory=list)
    message: str | None = None

    model_config = {"extra": "allow", "populate_by_name": True}


class DeleteIdentityResponse(BaseModel):
    """Response to delete-identity.

    Attributes:
        count: Number of identities removed
    """

    count: int = 0
    ipv4_address: str | None = Field(None, alias="ipv4-address")
    ipv6_address: str | None = Field(None, alias="ipv6-address")
    message: str | None = None

    model_config = {"extra": "allow", "populate_by_name": True}
