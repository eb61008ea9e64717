"""Classify object identifiers as UIDs or names."""

import re
from dataclasses import dataclass

# 8-4-4-4-12 hex digits, or the same 32 digits without separators.
_UID_PATTERN = re.compile(
    r"^(?:[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|[0-9a-f]{32})$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Identifier:
    """An identifier split into exactly one of uid or name."""

    uid: str | None = None
    name: str | None = None

    @property
    def field(self) -> str:
        """Request field name carrying this identifier."""
        return "name" if self.name is not None else "uid"

    @property
    def value(self) -> str:
        return self.name if self.name is not None else (self.uid or "")

    def as_payload(self) -> dict[str, str]:
        """Return the identifier as a request fragment ({"uid": ...} or {"name": ...})."""
        return {self.field: self.value}


def is_uid(token: str | None) -> bool:
    """Return True when the token is a canonical globally-unique identifier."""
    if not token:
        return False
    return _UID_PATTERN.match(token.strip()) is not None


def classify(token: str) -> Identifier:
    """
    Decide whether a token is a UID or a name.

    Blank tokens cannot be names, so they are classified into the uid field.

    Args:
        token: Value supplied by the caller.

    Returns:
        Identifier with exactly one of uid/name set.
    """
    if token is None or not token.strip() or is_uid(token):
        return Identifier(uid=token.strip() if token else token)
    return Identifier(name=token)


def lookup_field(token: str) -> dict[str, str]:
    """Build the request fragment identifying an object by uid or name."""
    return classify(token).as_payload()
