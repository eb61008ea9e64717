"""Placeholders for objects the server named only by uid.

A GenericReference is created whenever a response refers to an object it did
not include inline. It resolves itself on demand through an injected fetcher:

    ref = GenericReference(uid, fetcher=session.fetch_by_uid)
    obj = await ref.resolve()

States:
    UNRESOLVED -> RESOLVING -> RESOLVED
    UNRESOLVED -> RESOLVING -> FAILED   (the next resolve() tries again)

Resolution is not synchronised; two concurrent resolve() calls may both
issue a lookup.
"""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog

from ..utils.exceptions import ObjectStateError
from .detail_level import DetailLevel

logger = structlog.get_logger(__name__)

# async (uid, detail_level) -> object
Fetcher = Callable[[str, DetailLevel], Awaitable[Any]]


class ReferenceState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class GenericReference:
    """An object known only by its uid."""

    def __init__(self, uid: str, fetcher: Fetcher | None = None) -> None:
        self.uid = uid
        self._fetcher = fetcher
        self._target: Any = None
        self.state = ReferenceState.UNRESOLVED
        self.error: BaseException | None = None

    @property
    def target(self) -> Any:
        """The resolved object, or None before resolution."""
        return self._target

    @property
    def is_resolved(self) -> bool:
        return self.state is ReferenceState.RESOLVED

    @property
    def detail_level(self) -> DetailLevel:
        if self._target is None:
            return DetailLevel.UID
        return self._target.detail_level

    @property
    def name(self) -> str | None:
        if self._target is None:
            return None
        return self._target.summary.name

    def attach(self, obj: Any) -> None:
        """
        Bind this placeholder to an already materialised object (no request).

        Raises:
            ValueError: When the object has another uid.
        """
        if obj.uid != self.uid:
            raise ValueError(f"Cannot attach {obj.uid} to reference {self.uid}")
        self._target = obj
        self.state = ReferenceState.RESOLVED
        self.error = None

    async def resolve(
        self,
        only_if_partial: bool = False,
        min_detail_level: DetailLevel = DetailLevel.STANDARD,
    ) -> Any:
        """
        Return the referenced object, looking it up by uid when needed.

        Args:
            only_if_partial: Reuse the cached object only when it already
                holds min_detail_level.
            min_detail_level: Level required when only_if_partial is set.

        Returns:
            The fully detailed object.

        Raises:
            ObjectNotFoundError: The uid no longer exists.
            NoPermissionsError: The object is not visible to this session.
            ObjectStateError: The reference has no fetcher.
        """
        if self.state is ReferenceState.RESOLVED and self._target is not None:
            if not only_if_partial or self._target.detail_level >= min_detail_level:
                return self._target

        if self._fetcher is None:
            raise ObjectStateError(f"Reference {self.uid} cannot be resolved without a session")

        self.state = ReferenceState.RESOLVING
        try:
            obj = await self._fetcher(self.uid, DetailLevel.FULL)
        except BaseException as e:
            self.state = ReferenceState.FAILED
            self.error = e
            logger.debug("Reference resolution failed", uid=self.uid, error=str(e))
            raise

        self._target = obj
        self.state = ReferenceState.RESOLVED
        self.error = None
        return obj

    def membership_id(self) -> str:
        return self.uid

    def __str__(self) -> str:
        return self.name or self.uid

    def __repr__(self) -> str:
        return f"GenericReference(uid={self.uid!r}, state={self.state.value})"
