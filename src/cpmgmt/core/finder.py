"""Single-object lookups, reloads and deletes."""

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from ..models.base import Ignore, ObjectSummary
from ..models.detail_level import DetailLevel
from ..models.registry import TypeRegistry
from ..utils.identifiers import lookup_field
from .converter import ObjectConverter

if TYPE_CHECKING:
    from ..session import Session

logger = structlog.get_logger(__name__)


class Finder:
    """
    Runs "show-<type>", "show-object" and "delete-<type>" commands.

    Every call converts its response in a fresh conversion pass.
    """

    def __init__(self, session: "Session", registry: TypeRegistry | None = None) -> None:
        self.session = session
        self.registry = registry

    def converter(self, detail_level: DetailLevel = DetailLevel.FULL) -> ObjectConverter:
        return ObjectConverter(
            self.session,
            parent_detail_level=detail_level,
            child_detail_level=DetailLevel(min(detail_level, DetailLevel.STANDARD)),
            registry=self.registry,
        )

    async def find(
        self,
        command: str,
        identifier: str,
        detail_level: DetailLevel = DetailLevel.FULL,
        declared_type: type[ObjectSummary] | None = None,
        params: dict[str, Any] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """
        Look up one object by uid or name.

        Args:
            command: Show command (e.g. "show-host").
            identifier: Uid or name; classified automatically.
            detail_level: Level to request.
            declared_type: Class used when the response has no usable "type".
            params: Extra request fields.
            cancel: Event checked before the request.

        Returns:
            The converted object.

        Raises:
            ObjectNotFoundError: No object has this uid or name.
        """
        payload = {**lookup_field(identifier), **(params or {})}
        payload["details-level"] = detail_level.api_value
        response = await self.session.post(command, payload, cancel=cancel)
        return self._convert(response, declared_type, detail_level)

    async def find_object(
        self,
        uid: str,
        detail_level: DetailLevel = DetailLevel.FULL,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """Look up an object of any type by uid ("show-object")."""
        payload = {"uid": uid, "details-level": detail_level.api_value}
        response = await self.session.post("show-object", payload, cancel=cancel)
        return self._convert(response.get("object", response), None, detail_level)

    def _convert(
        self,
        raw: dict[str, Any],
        declared_type: type[ObjectSummary] | None,
        detail_level: DetailLevel,
    ) -> Any:
        converter = self.converter(detail_level)
        obj = converter.convert(raw, declared_type)
        return converter.finalize([obj])[0]

    def populate(
        self,
        obj: ObjectSummary,
        raw: dict[str, Any],
        detail_level: DetailLevel = DetailLevel.FULL,
    ) -> ObjectSummary:
        """Refill an existing object from a response in a fresh pass."""
        converter = self.converter(detail_level)
        converter.populate(obj, raw, detail_level)
        converter.finalize()
        return obj

    async def delete(
        self,
        command: str,
        identifier: str,
        ignore: Ignore = Ignore.NO,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """
        Delete an object by uid or name.

        Args:
            command: Delete command (e.g. "delete-host").
            identifier: Uid or name.
            ignore: Ignore warnings or errors reported by the server.
        """
        payload = {**lookup_field(identifier), **ignore.payload()}
        await self.session.post(command, payload, cancel=cancel)
        logger.debug("Object deleted", command=command, identifier=identifier)
