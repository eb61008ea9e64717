"""Change tracking for mutable entities.

Entities record the wire names of the fields a caller modified. Update requests
are built from those names only, so a "set-*" command carries a minimal diff.

Tracking is suspended while an object is populated from a server response:

    with obj.populating():
        ...  # fields assigned here are not recorded

Membership lists ("groups", "members") are tracked separately because the
server accepts three shapes for them: a full replacement list, {"add": [...]}
or {"remove": [...]}.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from enum import Enum
from typing import Any

from ..utils.exceptions import DetailLevelError
from .detail_level import DetailLevel


class ChangeTracking:
    """Base for entities that build minimal update payloads."""

    def __init__(self) -> None:
        # dict keeps insertion order, acting as an ordered set of wire names
        self._changed: dict[str, None] = {}
        self._suspended = 0
        self.is_new = True

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def mark_changed(self, name: str) -> None:
        """
        Record that the field with this wire name was modified.

        Recording the same name again has no further effect. Nothing is
        recorded while tracking is suspended.

        Args:
            name: Wire name of the field (e.g. "ipv4-address").
        """
        if self._suspended:
            return
        self._changed.setdefault(name, None)

    def is_field_changed(self, name: str) -> bool:
        return name in self._changed

    @property
    def changed_fields(self) -> tuple[str, ...]:
        return tuple(self._changed)

    @property
    def is_changed(self) -> bool:
        """True when any field or any membership list has pending changes."""
        if self._changed:
            return True
        return any(lst.is_changed for _, lst in self._membership_lists())

    @property
    def is_tracking_suspended(self) -> bool:
        return self._suspended > 0

    @contextmanager
    def tracking_suspended(self) -> Iterator[None]:
        """Suspend change recording for the duration of the block."""
        self._suspended += 1
        try:
            yield
        finally:
            self._suspended -= 1

    @contextmanager
    def populating(self) -> Iterator[None]:
        """
        Populate the object from server data.

        Tracking is suspended inside the block. When the block completes the
        object is no longer new and carries no pending changes. When it raises,
        is_new and the pending changes are kept.
        """
        with self.tracking_suspended():
            for _, lst in self._membership_lists():
                lst.begin_load()
            try:
                yield
            finally:
                for _, lst in self._membership_lists():
                    lst.end_load()
        self.is_new = False
        self.clear_tracking()

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    def build_diff(self) -> dict[str, Any]:
        """
        Project the recorded fields onto their current wire values.

        Returns:
            Mapping of wire name to new value, membership lists included.
        """
        diff = {name: self._wire_value(name) for name in self._changed}
        for name, lst in self._membership_lists():
            if lst.is_changed:
                diff[name] = lst.to_payload()
        return diff

    def clear_tracking(self) -> None:
        """Forget all pending changes (called after a successful update)."""
        self._changed.clear()
        for _, lst in self._membership_lists():
            lst.accept()

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _wire_value(self, name: str) -> Any:
        """Return the current wire value of a recorded field."""
        raise NotImplementedError

    def _membership_lists(self) -> Iterator[tuple[str, "MembershipList"]]:
        return iter(())


class ChangeAction(str, Enum):
    """Pending change on a membership list."""

    NONE = "none"
    SET = "set"
    ADD = "add"
    REMOVE = "remove"


def member_id(member: Any) -> str:
    """Identifier used when referring to a member in a request."""
    if isinstance(member, str):
        return member
    return member.membership_id()


class MembershipList(Sequence):
    """
    Members of a group-like field, with add/remove/replace tracking.

    Reading works like a list of the members returned by the server. Changes
    are made with add(), remove() and clear(); they are reported through
    to_payload() and do not alter the loaded members until the parent object
    is reloaded.
    """

    def __init__(self, parent: ChangeTracking) -> None:
        self.parent = parent
        self._members: list[Any] = []
        self._changes: list[str] = []
        self.action = ChangeAction.NONE
        self._loading = False
        self.loaded = False

    # Sequence protocol
    def __getitem__(self, index):  # type: ignore[override]
        return self._members[index]

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return f"MembershipList({self._members!r}, action={self.action.value})"

    @property
    def is_changed(self) -> bool:
        return self.action is not ChangeAction.NONE

    @property
    def pending(self) -> tuple[str, ...]:
        return tuple(self._changes)

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def begin_load(self) -> None:
        self._loading = True

    def end_load(self) -> None:
        self._loading = False

    def load(self, members: list[Any]) -> None:
        """Replace the loaded members (only valid while the parent populates)."""
        self._members = list(members)
        self.loaded = True

    def replace_member(self, index: int, member: Any) -> None:
        self._members[index] = member

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, member: Any) -> None:
        """
        Add a member by name, uid or object.

        Raises:
            DetailLevelError: When a removal is pending and the current
                members are unknown, so a replacement list cannot be built.
        """
        if self._loading:
            self._members.append(member)
            return

        item = member_id(member)
        if self.action in (ChangeAction.NONE, ChangeAction.ADD, ChangeAction.SET):
            if self.action is ChangeAction.NONE:
                self._changes = []
                self.action = ChangeAction.SET if self.parent.is_new else ChangeAction.ADD
            self._changes.append(item)
        elif self.loaded:
            # Pending removals plus an add: send the full resulting list
            to_remove = set(self._changes)
            self._changes = [
                member_id(m) for m in self._members if member_id(m) not in to_remove
            ]
            self._changes.append(item)
            self.action = ChangeAction.SET
        else:
            raise DetailLevelError(DetailLevel.STANDARD, DetailLevel.FULL)

    def remove(self, member: Any) -> bool:
        """
        Remove a member by name, uid or object.

        Returns:
            True when the removal was recorded or a pending add was dropped.

        Raises:
            DetailLevelError: When an add is pending and the current members
                are unknown.
        """
        item = member_id(member)
        if self.action in (ChangeAction.NONE, ChangeAction.REMOVE) and not self.parent.is_new:
            self.action = ChangeAction.REMOVE
            self._changes.append(item)
            return True
        if self.action is ChangeAction.SET:
            if item in self._changes:
                self._changes.remove(item)
                return True
            return False
        if self.loaded:
            to_add = list(self._changes)
            self._changes = [member_id(m) for m in self._members] + to_add
            self.action = ChangeAction.SET
            if item in self._changes:
                self._changes.remove(item)
                return True
            return False
        raise DetailLevelError(DetailLevel.STANDARD, DetailLevel.FULL)

    def clear(self) -> None:
        """Replace the membership with an empty list."""
        self.action = ChangeAction.SET
        self._changes = []

    def to_payload(self) -> list[str] | dict[str, list[str]]:
        """Wire value of the pending change."""
        if self.action is ChangeAction.ADD:
            return {"add": list(self._changes)}
        if self.action is ChangeAction.REMOVE:
            return {"remove": list(self._changes)}
        return list(self._changes)

    def accept(self) -> None:
        """Drop pending changes."""
        self._changes = []
        self.action = ChangeAction.NONE
