"""Detail levels and the policy applied when a property needs more detail."""

from enum import Enum, IntEnum


class DetailLevel(IntEnum):
    """How much of an object the server returned inline (ordered)."""

    UID = 0
    STANDARD = 1
    FULL = 2

    @property
    def api_value(self) -> str:
        """Value of the "details-level" request field."""
        return self.name.lower()

    @classmethod
    def from_api(cls, value: str) -> "DetailLevel":
        """Parse a "details-level" value ("uid", "standard", "full")."""
        try:
            return cls[value.strip().upper()]
        except KeyError as e:
            raise ValueError(f"Unknown detail level: {value!r}") from e


class DetailLevelAction(str, Enum):
    """What reading a property below its required detail level does."""

    RAISE = "raise"  # DetailLevelError
    RETURN_NONE = "return_none"  # Property reads as None
    AUTO_RELOAD = "auto_reload"  # Reload from the server, then read
    SESSION_DEFAULT = "session_default"  # Defer to the session option
