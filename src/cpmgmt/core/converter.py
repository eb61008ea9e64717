"""Object Converter - turns raw API payloads into typed objects.

One ObjectConverter is one conversion pass. Within a pass:

1. A string node is a bare uid. It becomes the well-known object with that
   uid, the instance already materialised in this pass, or a
   GenericReference placeholder.
2. An object node is dispatched on its "type" discriminator through the
   TypeRegistry. Missing, unknown or malformed discriminators fall back to
   the declared type of the position, else GenericObject.
3. Object nodes are deduplicated by uid. A node more detailed than the cached
   instance populates that instance further and raises its detail level.
4. finalize() attaches every placeholder whose uid was materialised later in
   the pass and rewrites container fields to point at the shared instance.

Top-level nodes use the parent detail level, nested nodes the child level.

A pass is not thread-safe and is meant to be discarded after one API call
(or one eager multi-page fetch); objects from different passes are never
unified.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from ..models.base import GenericObject, ObjectSummary
from ..models.detail_level import DetailLevel
from ..models.objects import WELL_KNOWN
from ..models.reference import GenericReference
from ..models.registry import TypeRegistry, default_registry

if TYPE_CHECKING:
    from ..session import Session

logger = structlog.get_logger(__name__)

# Errors raised by populate() on payloads of an unexpected shape
MALFORMED = (TypeError, AttributeError, ValueError)


class ObjectConverter:
    """Polymorphic deserializer with a per-pass lookup cache."""

    def __init__(
        self,
        session: "Session | None" = None,
        parent_detail_level: DetailLevel = DetailLevel.FULL,
        child_detail_level: DetailLevel = DetailLevel.STANDARD,
        registry: TypeRegistry | None = None,
    ) -> None:
        """
        Initialize a conversion pass.

        Args:
            session: Session bound to the created objects (reload, save, and
                reference resolution go through it).
            parent_detail_level: Level of the top-level nodes.
            child_detail_level: Level of nested nodes.
            registry: Discriminator table (default_registry when None).
        """
        self.session = session
        self.parent_detail_level = parent_detail_level
        self.child_detail_level = child_detail_level
        self.registry = registry or default_registry

        self._cache: dict[str, ObjectSummary] = {}
        self._placeholders: dict[str, GenericReference] = {}
        self._created: list[ObjectSummary] = []

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def convert(
        self,
        raw: Any,
        declared_type: type[ObjectSummary] | None = None,
        detail_level: DetailLevel | None = None,
    ) -> Any:
        """Convert one top-level node."""
        return self._convert(raw, declared_type, detail_level or self.parent_detail_level)

    def convert_many(
        self,
        raws: Iterable[Any],
        declared_type: type[ObjectSummary] | None = None,
        detail_level: DetailLevel | None = None,
    ) -> list[Any]:
        """Convert a list of top-level nodes, preserving order."""
        level = detail_level or self.parent_detail_level
        return [self._convert(raw, declared_type, level) for raw in raws]

    def convert_nested(self, raw: Any, declared_type: type[ObjectSummary] | None = None) -> Any:
        """Convert a node found inside another object (child detail level)."""
        return self._convert(raw, declared_type, self.child_detail_level)

    def populate(
        self,
        obj: ObjectSummary,
        raw: dict[str, Any],
        detail_level: DetailLevel | None = None,
    ) -> ObjectSummary:
        """
        Refill an existing instance (reload, save) within this pass.

        The instance is registered under its uid first so nested nodes
        naming it resolve to it.
        """
        level = detail_level or self.parent_detail_level
        uid = raw.get("uid") or obj.uid
        if uid:
            self._cache[uid] = obj
        self._created.append(obj)
        obj.populate(raw, self, level)
        return obj

    def get_from_cache(self, uid: str) -> ObjectSummary | None:
        return self._cache.get(uid)

    @property
    def placeholders(self) -> list[GenericReference]:
        return list(self._placeholders.values())

    # ------------------------------------------------------------------
    # Node handling
    # ------------------------------------------------------------------

    def _convert(
        self,
        raw: Any,
        declared_type: type[ObjectSummary] | None,
        level: DetailLevel,
    ) -> Any:
        if raw is None:
            return None
        if isinstance(raw, str):
            return self._from_uid(raw)
        if isinstance(raw, list):
            return [self._convert(item, declared_type, level) for item in raw]
        if not isinstance(raw, dict):
            logger.debug("Unexpected node kept as is", node_type=type(raw).__name__)
            return raw

        uid = raw.get("uid")
        if not isinstance(uid, str) or not uid:
            return self._materialise(raw, declared_type, level, None)
        if uid in WELL_KNOWN:
            return WELL_KNOWN[uid]
        if raw.keys() <= {"uid"}:
            return self._from_uid(uid)

        existing = self._cache.get(uid)
        if existing is not None:
            if level > existing.detail_level:
                try:
                    existing.populate(raw, self, level)
                except MALFORMED as e:
                    logger.warning(
                        "Malformed object ignored, cached copy kept", uid=uid, error=str(e)
                    )
            return existing
        return self._materialise(raw, declared_type, level, uid)

    def _materialise(
        self,
        raw: dict[str, Any],
        declared_type: type[ObjectSummary] | None,
        level: DetailLevel,
        uid: str | None,
    ) -> ObjectSummary:
        cls = self.registry.resolve(raw.get("type"), declared_type)
        obj = cls.from_server(self.session, level)
        # Registered before filling so self-references resolve to this instance
        if uid:
            self._cache[uid] = obj
        self._created.append(obj)
        try:
            obj.populate(raw, self, level)
        except MALFORMED as e:
            logger.warning(
                "Malformed object kept as generic object",
                uid=uid,
                type=raw.get("type"),
                error=str(e),
            )
            self._created.remove(obj)
            obj = GenericObject.from_raw(self.session, raw, level)
            if uid:
                self._cache[uid] = obj
            self._created.append(obj)
        return obj

    def _from_uid(self, uid: str) -> Any:
        if uid in WELL_KNOWN:
            return WELL_KNOWN[uid]
        cached = self._cache.get(uid)
        if cached is not None:
            return cached
        ref = self._placeholders.get(uid)
        if ref is None:
            fetcher = getattr(self.session, "fetch_by_uid", None)
            ref = GenericReference(uid, fetcher=fetcher)
            self._placeholders[uid] = ref
        return ref

    # ------------------------------------------------------------------
    # Finalisation
    # ------------------------------------------------------------------

    def _swap(self, value: Any) -> Any:
        if isinstance(value, GenericReference):
            target = self._cache.get(value.uid)
            if target is not None:
                value.attach(target)
                return target
        return value

    def finalize(self, items: list[Any] | None = None) -> list[Any] | None:
        """
        Upgrade placeholders whose uid was materialised during the pass.

        Args:
            items: Top-level results of the pass; placeholders among them are
                replaced too.

        Returns:
            The rewritten items (None when items is None).
        """
        attached = 0
        for ref in self._placeholders.values():
            target = self._cache.get(ref.uid)
            if target is not None:
                ref.attach(target)
                attached += 1
        for obj in self._created:
            obj.replace_references(self._swap)

        logger.debug(
            "Conversion pass finalized",
            objects=len(self._cache),
            placeholders=len(self._placeholders),
            attached=attached,
        )
        if items is None:
            return None
        return [self._swap(item) for item in items]
