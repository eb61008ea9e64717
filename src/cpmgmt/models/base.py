"""Common shape of every management object.

Every entity embeds a Summary (uid, name, type, domain, detail level) and
declares its remaining wire fields as descriptors:

    class Host(ObjectBase):
        type_name = "host"
        ipv4_address = Field("ipv4-address")
        groups = MembershipField("groups", DetailLevel.FULL)

Reading a field below its required detail level goes through
ObjectSummary.check_detail_level(), which returns None, reloads the object or
raises DetailLevelError depending on the session's DetailLevelAction.
Assigning a field records its wire name for the next "set-*" request.
"""

import asyncio
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from ..constants import DATA_DOMAIN_UID, DEFAULT_DOMAIN_UID
from ..utils.exceptions import DetailLevelError, ObjectStateError
from .detail_level import DetailLevel, DetailLevelAction
from .tracking import ChangeTracking, MembershipList, member_id

if TYPE_CHECKING:
    from ..session import Session

logger = structlog.get_logger(__name__)


def _in_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


# Keys handled by the embedded Summary rather than by field descriptors
SUMMARY_KEYS = frozenset({"uid", "name", "type", "domain"})


@dataclass(frozen=True, eq=False)
class Domain:
    """Namespace an object belongs to. Two domains are equal when their uids are."""

    uid: str
    name: str = ""
    domain_type: str = ""

    DEFAULT: ClassVar["Domain"]
    DATA_DOMAIN: ClassVar["Domain"]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Domain):
            return NotImplemented
        return self.uid == other.uid

    def __hash__(self) -> int:
        return hash(self.uid)

    @classmethod
    def from_dict(cls, data: Any) -> "Domain | None":
        """Build a Domain from its wire form (object, bare uid or None)."""
        if data is None:
            return None
        if isinstance(data, str):
            for known in (cls.DEFAULT, cls.DATA_DOMAIN):
                if known.uid == data:
                    return known
            return cls(uid=data)
        if not isinstance(data, dict):
            raise TypeError(f"domain must be an object or a uid, got {type(data).__name__}")
        return cls(
            uid=data.get("uid", ""),
            name=data.get("name", ""),
            domain_type=data.get("domain-type", ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"uid": self.uid, "name": self.name, "domain-type": self.domain_type}


Domain.DEFAULT = Domain(uid=DEFAULT_DOMAIN_UID, name="SMC User", domain_type="domain")
Domain.DATA_DOMAIN = Domain(uid=DATA_DOMAIN_UID, name="Check Point Data", domain_type="data domain")


@dataclass
class Summary:
    """Fields shared by every object, whatever its detail level."""

    uid: str | None = None
    name: str | None = None
    type: str | None = None
    domain: Domain | None = None
    detail_level: DetailLevel = DetailLevel.FULL


class Ignore(str, Enum):
    """Whether add/set/delete requests ignore server warnings or errors."""

    NO = "no"
    WARNINGS = "warnings"
    ERRORS = "errors"

    def payload(self) -> dict[str, bool]:
        if self is Ignore.WARNINGS:
            return {"ignore-warnings": True}
        if self is Ignore.ERRORS:
            return {"ignore-errors": True}
        return {}


# -----------------------------------------------------------------------------
# Field descriptors
# -----------------------------------------------------------------------------


class Field:
    """
    One scalar wire field of an entity.

    Values live in the instance __dict__ under the attribute name, so reads
    performed by the converter and the diff builder (via raw()) bypass the
    detail level check.
    """

    def __init__(self, wire: str, min_level: DetailLevel = DetailLevel.STANDARD) -> None:
        self.wire = wire
        self.min_level = min_level
        self.attr = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.attr = name

    def __get__(self, obj: "ObjectSummary | None", objtype: type | None = None) -> Any:
        if obj is None:
            return self
        if not obj.check_detail_level(self.min_level):
            return None
        return self.raw(obj)

    def __set__(self, obj: "ObjectSummary", value: Any) -> None:
        obj.__dict__[self.attr] = value
        obj.mark_changed(self.wire)

    def default(self) -> Any:
        return None

    def raw(self, obj: "ObjectSummary") -> Any:
        return obj.__dict__.get(self.attr, self.default())

    def load(self, obj: "ObjectSummary", value: Any, converter: Any = None) -> None:
        obj.__dict__[self.attr] = value

    def dump(self, value: Any) -> Any:
        return value

    def references(self, obj: "ObjectSummary") -> Iterator[Any]:
        return iter(())

    def replace_references(self, obj: "ObjectSummary", swap: Callable[[Any], Any]) -> None:
        pass


class ObjectField(Field):
    """A field holding one referenced object (or a reference placeholder)."""

    def __init__(
        self,
        wire: str,
        min_level: DetailLevel = DetailLevel.STANDARD,
        declared_type: type | None = None,
    ) -> None:
        super().__init__(wire, min_level)
        self.declared_type = declared_type

    def load(self, obj, value, converter=None):
        if converter is not None and value is not None:
            value = converter.convert_nested(value, self.declared_type)
        obj.__dict__[self.attr] = value

    def dump(self, value):
        return None if value is None else member_id(value)

    def references(self, obj):
        value = self.raw(obj)
        if value is not None and not isinstance(value, str):
            yield value

    def replace_references(self, obj, swap):
        value = self.raw(obj)
        if value is not None:
            obj.__dict__[self.attr] = swap(value)


def _as_list(field: Field, value: Any) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"'{field.wire}' must be a list, got {type(value).__name__}")
    return list(value)


class ObjectListField(ObjectField):
    """A field holding a list of referenced objects, replaced as a whole on update."""

    def default(self):
        return []

    def __set__(self, obj, value):
        super().__set__(obj, list(value) if value is not None else [])

    def load(self, obj, value, converter=None):
        items = _as_list(self, value)
        if converter is not None:
            items = [converter.convert_nested(item, self.declared_type) for item in items]
        obj.__dict__[self.attr] = items

    def dump(self, value):
        return [member_id(item) for item in value or []]

    def references(self, obj):
        for item in self.raw(obj):
            if not isinstance(item, str):
                yield item

    def replace_references(self, obj, swap):
        obj.__dict__[self.attr] = [swap(item) for item in self.raw(obj)]


class MembershipField(ObjectField):
    """
    A "groups"/"members" style field backed by a MembershipList.

    The list is created with the object; assigning an iterable replaces the
    membership (a full list in the next update request).
    """

    def default(self):
        return None

    def __set__(self, obj, value):
        lst = self.raw(obj)
        lst.clear()
        for member in value or []:
            lst.add(member)

    def load(self, obj, value, converter=None):
        items = _as_list(self, value)
        if converter is not None:
            items = [converter.convert_nested(item, self.declared_type) for item in items]
        self.raw(obj).load(items)

    def dump(self, value):
        return [member_id(item) for item in value or []]

    def references(self, obj):
        for item in self.raw(obj):
            if not isinstance(item, str):
                yield item

    def replace_references(self, obj, swap):
        lst = self.raw(obj)
        for index, item in enumerate(lst):
            lst.replace_member(index, swap(item))


# -----------------------------------------------------------------------------
# Base entity
# -----------------------------------------------------------------------------


class ObjectSummary(ChangeTracking):
    """
    Base class of every management object.

    Subclasses set type_name (the "type" discriminator and the suffix of the
    add-/set-/show-/delete- commands) and declare Field descriptors.
    """

    type_name: ClassVar[str] = ""
    list_command: ClassVar[str | None] = None
    _fields: ClassVar[dict[str, Field]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        fields: dict[str, Field] = {}
        for klass in reversed(cls.__mro__):
            for value in vars(klass).values():
                if isinstance(value, Field):
                    fields[value.wire] = value
        cls._fields = fields

    def __init__(
        self,
        session: "Session | None" = None,
        detail_level: DetailLevel = DetailLevel.FULL,
        name: str | None = None,
    ) -> None:
        super().__init__()
        self.session = session
        self.summary = Summary(type=self.type_name or None, detail_level=detail_level)
        self.extra: dict[str, Any] = {}
        for field in self._fields.values():
            if isinstance(field, MembershipField):
                lst = MembershipList(self)
                # A new object has a known, empty membership
                lst.loaded = True
                self.__dict__[field.attr] = lst
        if name is not None:
            self.name = name

    @classmethod
    def from_server(
        cls, session: "Session | None", detail_level: DetailLevel
    ) -> "ObjectSummary":
        """Create an empty instance that will be populated from a response."""
        obj = cls(session, detail_level)
        obj.is_new = False
        for _, lst in obj._membership_lists():
            lst.loaded = False
        return obj

    # ------------------------------------------------------------------
    # Summary properties
    # ------------------------------------------------------------------

    @property
    def uid(self) -> str | None:
        return self.summary.uid

    @property
    def detail_level(self) -> DetailLevel:
        return self.summary.detail_level

    @property
    def type(self) -> str | None:
        return self.summary.type or self.type_name or None

    @property
    def name(self) -> str | None:
        if not self.check_detail_level(DetailLevel.STANDARD):
            return None
        return self.summary.name

    @name.setter
    def name(self, value: str) -> None:
        self.summary.name = value
        self.mark_changed("name")

    @property
    def domain(self) -> Domain | None:
        if not self.check_detail_level(DetailLevel.STANDARD):
            return None
        return self.summary.domain

    # ------------------------------------------------------------------
    # Detail level
    # ------------------------------------------------------------------

    def raise_detail_level(self, level: DetailLevel) -> None:
        """Raise the detail level; lowering requests are ignored."""
        if level > self.summary.detail_level:
            self.summary.detail_level = level

    def check_detail_level(
        self,
        min_level: DetailLevel,
        action: DetailLevelAction = DetailLevelAction.SESSION_DEFAULT,
    ) -> bool:
        """
        Test whether a property needing min_level can be read.

        Args:
            min_level: Detail level the property requires.
            action: Override of the session's DetailLevelAction.

        Returns:
            True when the property can be read, False when it reads as None.

        Raises:
            DetailLevelError: When the action is RAISE (or a reload did not
                reach the required level).
        """
        if self.summary.detail_level >= min_level:
            return True

        if action is DetailLevelAction.SESSION_DEFAULT:
            action = getattr(self.session, "detail_level_action", DetailLevelAction.RAISE)

        if action is DetailLevelAction.RETURN_NONE:
            return False
        if action is DetailLevelAction.AUTO_RELOAD and self.session is not None and self.uid:
            logger.debug(
                "Auto reloading object",
                uid=self.uid,
                detail_level=self.summary.detail_level.name,
                required=min_level.name,
            )
            if _in_event_loop():
                logger.warning(
                    "Blocking reload inside a running event loop; await reload() instead",
                    uid=self.uid,
                    required=min_level.name,
                )
            self.reload_sync(detail_level=DetailLevel.FULL)
            if self.summary.detail_level >= min_level:
                return True
        raise DetailLevelError(self.summary.detail_level, min_level)

    # ------------------------------------------------------------------
    # Population and diff
    # ------------------------------------------------------------------

    def populate(
        self,
        data: dict[str, Any],
        converter: Any = None,
        detail_level: DetailLevel | None = None,
    ) -> None:
        """
        Fill the object from a server payload without recording changes.

        Args:
            data: JSON object returned by the server.
            converter: Conversion pass used for nested objects.
            detail_level: Level the payload was requested at.
        """
        with self.populating():
            summary = self.summary
            summary.uid = data.get("uid", summary.uid)
            if "name" in data:
                summary.name = data["name"]
            if "type" in data:
                summary.type = data["type"]
            if "domain" in data:
                summary.domain = Domain.from_dict(data["domain"])
            for key, value in data.items():
                field = self._fields.get(key)
                if field is not None:
                    field.load(self, value, converter)
                elif key not in SUMMARY_KEYS:
                    self.extra[key] = value
            if detail_level is not None:
                self.raise_detail_level(detail_level)

    def _wire_value(self, name: str) -> Any:
        if name == "name":
            return self.summary.name
        field = self._fields[name]
        return field.dump(field.raw(self))

    def _membership_lists(self) -> Iterator[tuple[str, MembershipList]]:
        for field in self._fields.values():
            if isinstance(field, MembershipField):
                yield field.wire, field.raw(self)

    def membership_id(self) -> str:
        """
        Identifier used when this object is added to or removed from a group.

        Returns:
            The uid when the name is blank or has a pending change, else the name.

        Raises:
            ObjectStateError: When the object has not been saved yet.
        """
        if self.is_new or not self.uid:
            raise ObjectStateError(f"{self.type} has not been saved and cannot be referenced")
        name = self.summary.name
        if not name or not name.strip() or self.is_field_changed("name"):
            return self.uid
        return name

    def references(self) -> Iterator[Any]:
        """Yield every object this one refers to (members, groups, rule cells)."""
        for field in self._fields.values():
            yield from field.references(self)

    def replace_references(self, swap: Callable[[Any], Any]) -> None:
        for field in self._fields.values():
            field.replace_references(self, swap)

    # ------------------------------------------------------------------
    # Server round-trips
    # ------------------------------------------------------------------

    def _require_session(self) -> "Session":
        if self.session is None:
            raise ObjectStateError(f"{self.type} is not bound to a session")
        return self.session

    def _show_request(self, detail_level: DetailLevel) -> tuple[str, dict[str, Any]]:
        if not self.uid:
            raise ObjectStateError(f"{self.type} has no uid and cannot be reloaded")
        return f"show-{self.type_name}", {
            **self._identity_payload(),
            "details-level": detail_level.api_value,
        }

    def _identity_payload(self) -> dict[str, Any]:
        """Fields identifying this object in show-/set-/delete- requests."""
        return {"uid": self.uid}

    def _unwrap_show(self, response: dict[str, Any]) -> dict[str, Any]:
        return response

    async def reload(
        self,
        only_if_partial: bool = False,
        detail_level: DetailLevel = DetailLevel.FULL,
    ) -> "ObjectSummary":
        """
        Reload the object from the server.

        Args:
            only_if_partial: Skip the request when the object already holds
                detail_level.
            detail_level: Level to request.

        Returns:
            self, repopulated.
        """
        if only_if_partial and self.summary.detail_level >= detail_level:
            return self
        session = self._require_session()
        command, payload = self._show_request(detail_level)
        response = await session.post(command, payload)
        session.populate(self, self._unwrap_show(response), detail_level)
        return self

    def reload_sync(self, detail_level: DetailLevel = DetailLevel.FULL) -> "ObjectSummary":
        """Blocking reload, used when a property read triggers AUTO_RELOAD."""
        session = self._require_session()
        command, payload = self._show_request(detail_level)
        response = session.post_sync(command, payload)
        session.populate(self, self._unwrap_show(response), detail_level)
        return self

    async def save(self, ignore: Ignore = Ignore.NO) -> "ObjectSummary":
        """
        Create the object ("add-*") or send its pending changes ("set-*").

        Args:
            ignore: Ignore warnings or errors reported by the server.

        Returns:
            self, repopulated from the server response.
        """
        session = self._require_session()
        if self.is_new:
            command = f"add-{self.type_name}"
            payload = self.build_diff()
        else:
            if not self.uid:
                raise ObjectStateError(f"{self.type} has no uid and cannot be updated")
            if not self.is_changed:
                logger.debug("No pending changes", uid=self.uid, type=self.type)
                return self
            command = f"set-{self.type_name}"
            diff = self.build_diff()
            if "name" in diff:
                diff["new-name"] = diff.pop("name")
            payload = {**self._identity_payload(), **diff}
        payload.update(ignore.payload())
        payload["details-level"] = DetailLevel.FULL.api_value

        response = await session.post(command, payload)
        session.populate(self, response, DetailLevel.FULL)
        return self

    async def delete(self, ignore: Ignore = Ignore.NO) -> None:
        """Delete the object on the server."""
        session = self._require_session()
        if self.is_new or not self.uid:
            raise ObjectStateError(f"{self.type} has not been saved and cannot be deleted")
        await session.post(
            f"delete-{self.type_name}", {**self._identity_payload(), **ignore.payload()}
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_export_dict(self) -> dict[str, Any]:
        """Wire-shaped dict of everything loaded, with references as identifiers."""
        data: dict[str, Any] = {"uid": self.uid, "name": self.summary.name, "type": self.type}
        if self.summary.domain is not None:
            data["domain"] = self.summary.domain.to_dict()
        for wire, field in self._fields.items():
            value = field.raw(self)
            if isinstance(field, MembershipField):
                if not value.loaded:
                    continue
                data[wire] = field.dump(value)
            elif value is not None:
                data[wire] = field.dump(value)
        data.update(self.extra)
        return data

    def __str__(self) -> str:
        return self.summary.name or self.uid or ""

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(uid={self.uid!r}, name={self.summary.name!r}, "
            f"detail_level={self.summary.detail_level.name})"
        )


class GenericObject(ObjectSummary):
    """
    Object of a type without a dedicated class.

    Every property the server sent is kept in extra; it is loaded through
    "show-object" and cannot be created or updated.
    """

    @classmethod
    def from_raw(
        cls, session: "Session | None", raw: dict[str, Any], detail_level: DetailLevel
    ) -> "GenericObject":
        """Keep a payload that failed typed population as plain properties."""
        obj = cls.from_server(session, detail_level)
        with obj.populating():
            for key in ("uid", "name", "type"):
                value = raw.get(key)
                setattr(obj.summary, key, value if isinstance(value, str) else None)
            obj.extra.update(
                (k, v) for k, v in raw.items() if k not in ("uid", "name", "type")
            )
        return obj

    def __getitem__(self, key: str) -> Any:
        return self.extra[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.extra.get(key, default)

    def _show_request(self, detail_level):
        if not self.uid:
            raise ObjectStateError("Generic object has no uid and cannot be reloaded")
        return "show-object", {"uid": self.uid, "details-level": detail_level.api_value}

    def _unwrap_show(self, response):
        return response.get("object", response)

    async def save(self, ignore: Ignore = Ignore.NO) -> "ObjectSummary":
        raise ObjectStateError(f"Objects of type {self.type!r} cannot be saved")

    async def delete(self, ignore: Ignore = Ignore.NO) -> None:
        raise ObjectStateError(f"Objects of type {self.type!r} cannot be deleted")
