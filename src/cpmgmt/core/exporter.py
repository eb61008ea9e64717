"""Export module for collecting an object graph into JSON.

Starting from a set of root objects, the exporter follows group memberships,
group members and rule cells, reloading partial objects at full detail.
Resolution is best-effort: an object that cannot be loaded (deleted in the
meantime, not visible to this administrator) is logged and skipped.
"""

import asyncio
import json
import sys
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from ..models.base import ObjectSummary
from ..models.reference import GenericReference
from ..utils.exceptions import CheckPointError, check_cancelled

if TYPE_CHECKING:
    from ..session import Session

logger = structlog.get_logger(__name__)


class ObjectExporter:
    """
    Collect objects and everything they reference.

    Objects are keyed by uid, so each one is exported once however many
    paths lead to it.
    """

    def __init__(
        self,
        session: "Session | None" = None,
        exclude_by_type: Iterable[str] | None = None,
        exclude_by_name: Iterable[str] | None = None,
        exclude_details_by_type: Iterable[str] | None = None,
        exclude_details_by_name: Iterable[str] | None = None,
    ):
        """
        Initialize exporter.

        Args:
            session: Used to look up objects given as bare uids.
            exclude_by_type: Types left out of the export (case-insensitive).
            exclude_by_name: Names left out of the export.
            exclude_details_by_type: Types exported without following their
                references.
            exclude_details_by_name: Names exported without following their
                references.
        """
        self.session = session
        self.exclude_by_type = self._normalise(exclude_by_type)
        self.exclude_by_name = self._normalise(exclude_by_name)
        self.exclude_details_by_type = self._normalise(exclude_details_by_type)
        self.exclude_details_by_name = self._normalise(exclude_details_by_name)
        self.objects: dict[str, ObjectSummary] = {}
        self.skipped: list[str] = []
        self.excluded: set[str] = set()

    @staticmethod
    def _normalise(values: Iterable[str] | None) -> frozenset[str]:
        return frozenset(v.lower() for v in values or ())

    @staticmethod
    def _matches(value: str | None, excluded: frozenset[str]) -> bool:
        return bool(value) and value.lower() in excluded

    @property
    def count(self) -> int:
        return len(self.objects)

    async def add(
        self,
        item: Any,
        max_depth: int = sys.maxsize,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """
        Add an object (or a list of them) and, up to max_depth levels, what it references.

        Args:
            item: Object, reference, uid, or any iterable of those.
            max_depth: How many reference levels to follow (0 = roots only).
            cancel: Event checked before each object.
        """
        check_cancelled(cancel)
        if item is None:
            return
        if not isinstance(item, (str, ObjectSummary, GenericReference)):
            for child in list(item):
                await self.add(child, max_depth, cancel)
            return

        known_uid = item if isinstance(item, str) else item.uid
        if known_uid and (known_uid in self.objects or known_uid in self.excluded):
            return

        obj = await self._resolve(item)
        if obj is None or not obj.uid or obj.uid in self.objects or obj.uid in self.excluded:
            return

        name, type_name = obj.summary.name, obj.type
        if self._matches(name, self.exclude_by_name) or self._matches(
            type_name, self.exclude_by_type
        ):
            self.excluded.add(obj.uid)
            logger.debug("Excluded from export", uid=obj.uid, name=name, type=type_name)
            return

        self.objects[obj.uid] = obj
        if max_depth <= 0:
            return
        if self._matches(name, self.exclude_details_by_name) or self._matches(
            type_name, self.exclude_details_by_type
        ):
            return

        for ref in list(obj.references()):
            await self.add(ref, max_depth - 1, cancel)

    async def _resolve(self, item: Any) -> ObjectSummary | None:
        try:
            if isinstance(item, GenericReference):
                return await item.resolve()
            if isinstance(item, str):
                if self.session is None:
                    logger.warning("Cannot export bare uid without a session", uid=item)
                    self.skipped.append(item)
                    return None
                return await self.session.find_object(item)
            if item.session is not None and item.uid:
                return await item.reload(only_if_partial=True)
            return item
        except CheckPointError as e:
            uid = item if isinstance(item, str) else item.uid
            logger.warning("Skipping object that could not be resolved", uid=uid, error=str(e))
            self.skipped.append(uid)
            return item if isinstance(item, ObjectSummary) else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "objects": [
                {k: v for k, v in obj.to_export_dict().items() if v is not None}
                for obj in self.objects.values()
            ]
        }

    def export(self, indent: bool = False) -> str:
        """
        Serialise the collected objects.

        Args:
            indent: Pretty-print the JSON.

        Returns:
            JSON document {"objects": [...]}.
        """
        logger.info("Exporting objects", count=self.count, skipped=len(self.skipped))
        return json.dumps(self.to_dict(), indent=2 if indent else None, default=str)
