"""Pager - drives "show-*" list commands across pages.

The server reports each page as a 1-based inclusive window (from, to) over
total results. The next page is requested with offset = to and the same
limit until to == total.

Two modes:
- fetch_all(): eager, loops until exhausted and returns one flat list. All
  pages share one conversion pass, finalized once at the end.
- fetch_page(): manual, returns one PagingResult whose next_page()
  continuation fetches the following page in a fresh conversion pass.

Cancellation is cooperative: an asyncio.Event checked before every request.
Requests already sent are not interrupted.
"""

import asyncio
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from ..constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, MAX_PAGES
from ..models.base import ObjectSummary
from ..models.detail_level import DetailLevel
from ..models.paging import PagingResult
from ..models.registry import TypeRegistry
from ..transport.response_models import PagingEnvelope
from ..utils.exceptions import check_cancelled
from .converter import ObjectConverter

if TYPE_CHECKING:
    from ..session import Session

logger = structlog.get_logger(__name__)


def sort_order(field: str, descending: bool = False) -> dict[str, str]:
    """Build one "order" entry, e.g. {"ASC": "name"}."""
    return {"DESC" if descending else "ASC": field}


class Pager:
    """Fetches list commands page by page through a session."""

    def __init__(self, session: "Session", registry: TypeRegistry | None = None) -> None:
        """
        Args:
            session: Anything exposing `await post(command, payload, cancel=None)`;
                also bound to the objects created.
            registry: Discriminator table for the conversion passes.
        """
        self.session = session
        self.registry = registry

    # ------------------------------------------------------------------
    # Manual mode
    # ------------------------------------------------------------------

    async def fetch_page(
        self,
        command: str,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_LIMIT,
        params: dict[str, Any] | None = None,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        declared_type: type[ObjectSummary] | None = None,
        items_field: str | None = None,
        dictionary_field: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PagingResult[Any]:
        """
        Fetch one page.

        Args:
            command: List command (e.g. "show-hosts").
            offset: Number of results to skip.
            limit: Page size (clamped to 1..MAX_PAGE_LIMIT).
            params: Extra request fields (filters, layer name, ...).
            detail_level: Level requested for the items.
            order: Sort entry from sort_order(); server order otherwise.
            declared_type: Class used when an item has no usable "type".
            items_field: Response array holding the items (auto-detected
                when None).
            dictionary_field: Response array of objects referenced by the
                items by uid (e.g. "objects-dictionary").
            cancel: Event checked before the request.

        Returns:
            The page, with a continuation while more results remain.
        """
        limit = self._clamp(limit)
        converter = self._converter(detail_level)
        response = await self._request_page(
            command, offset, limit, params, detail_level, order, cancel
        )
        window = self._window(response, command)
        items = self._convert_page(
            converter, response, window, declared_type, items_field, dictionary_field, detail_level
        )
        items = converter.finalize(items) or []

        next_page = None
        if self._advances(window, offset, command):
            next_offset = window.to

            async def next_page(next_cancel: asyncio.Event | None = None) -> PagingResult[Any]:
                return await self.fetch_page(
                    command,
                    offset=next_offset,
                    limit=limit,
                    params=params,
                    detail_level=detail_level,
                    order=order,
                    declared_type=declared_type,
                    items_field=items_field,
                    dictionary_field=dictionary_field,
                    cancel=next_cancel,
                )

        return PagingResult(
            items=items,
            from_=window.from_,
            to=window.to,
            total=window.total,
            _next=next_page,
        )

    # ------------------------------------------------------------------
    # Eager mode
    # ------------------------------------------------------------------

    async def fetch_all(
        self,
        command: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        params: dict[str, Any] | None = None,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        declared_type: type[ObjectSummary] | None = None,
        items_field: str | None = None,
        dictionary_field: str | None = None,
        cancel: asyncio.Event | None = None,
        max_pages: int = MAX_PAGES,
    ) -> list[Any]:
        """
        Fetch every page and return the concatenated items in server order.

        Same arguments as fetch_page(); max_pages bounds the loop.
        """
        limit = self._clamp(limit)
        converter = self._converter(detail_level)
        all_items: list[Any] = []
        offset = 0
        page_count = 0

        while True:
            page_count += 1
            if page_count > max_pages:
                logger.warning(
                    "Pagination safety limit reached",
                    command=command,
                    max_pages=max_pages,
                    items_fetched=len(all_items),
                )
                break

            logger.debug(
                "Fetching paginated data",
                command=command,
                page=page_count,
                offset=offset,
                items_so_far=len(all_items),
            )
            response = await self._request_page(
                command, offset, limit, params, detail_level, order, cancel
            )
            window = self._window(response, command)
            all_items.extend(
                self._convert_page(
                    converter,
                    response,
                    window,
                    declared_type,
                    items_field,
                    dictionary_field,
                    detail_level,
                )
            )
            if not self._advances(window, offset, command):
                break
            offset = window.to

        logger.debug(
            "Pagination complete",
            command=command,
            total_pages=page_count,
            total_items=len(all_items),
        )
        return converter.finalize(all_items) or []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clamp(limit: int) -> int:
        return max(1, min(limit, MAX_PAGE_LIMIT))

    def _converter(self, detail_level: DetailLevel) -> ObjectConverter:
        # Nested objects never come back more detailed than "standard"
        child = DetailLevel(min(detail_level, DetailLevel.STANDARD))
        return ObjectConverter(
            self.session,
            parent_detail_level=detail_level,
            child_detail_level=child,
            registry=self.registry,
        )

    async def _request_page(
        self,
        command: str,
        offset: int,
        limit: int,
        params: dict[str, Any] | None,
        detail_level: DetailLevel,
        order: dict[str, str] | None,
        cancel: asyncio.Event | None,
    ) -> dict[str, Any]:
        check_cancelled(cancel, command)
        payload = dict(params or {})
        payload["limit"] = limit
        payload["offset"] = offset
        payload["details-level"] = detail_level.api_value
        if order:
            payload["order"] = [order]
        return await self.session.post(command, payload, cancel=cancel)

    @staticmethod
    def _window(response: dict[str, Any], command: str) -> PagingEnvelope:
        try:
            return PagingEnvelope.model_validate(response)
        except ValidationError as e:
            logger.warning(
                "Malformed paging window, treating as last page",
                command=command,
                error=str(e),
            )
            return PagingEnvelope()

    def _convert_page(
        self,
        converter: ObjectConverter,
        response: dict[str, Any],
        window: PagingEnvelope,
        declared_type: type[ObjectSummary] | None,
        items_field: str | None,
        dictionary_field: str | None,
        detail_level: DetailLevel,
    ) -> list[Any]:
        if dictionary_field:
            # Objects the items refer to by uid; converted first so the
            # references land on these instances.
            converter.convert_many(
                response.get(dictionary_field) or [],
                detail_level=converter.child_detail_level,
            )

        raw_items = window.get_items(response, items_field)
        if window.total and len(raw_items) != window.to - window.from_ + 1:
            logger.debug(
                "Page size does not match window",
                items=len(raw_items),
                from_=window.from_,
                to=window.to,
            )
        return converter.convert_many(raw_items, declared_type, detail_level)

    @staticmethod
    def _advances(window: PagingEnvelope, offset: int, command: str) -> bool:
        if window.total == 0 or window.to >= window.total:
            return False
        if window.to <= offset:
            logger.warning(
                "Pagination did not advance, stopping",
                command=command,
                offset=offset,
                to=window.to,
                total=window.total,
            )
            return False
        return True
