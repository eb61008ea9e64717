"""One page of a "show-*" list command."""

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

# Continuation fetching the next page; accepts an optional cancel event
NextPage = Callable[[asyncio.Event | None], Awaitable["PagingResult[Any]"]]


@dataclass
class PagingResult(Generic[T]):
    """
    Items of one page plus the window they occupy.

    from_ and to are 1-based and inclusive; both are 0 when total is 0.
    The continuation is only set while to < total.
    """

    items: list[T] = field(default_factory=list)
    from_: int = 0
    to: int = 0
    total: int = 0
    _next: NextPage | None = field(default=None, repr=False)

    @property
    def has_next(self) -> bool:
        return self._next is not None

    async def next_page(self, cancel: asyncio.Event | None = None) -> "PagingResult[T] | None":
        """
        Fetch the page after this one.

        Returns:
            The next page, or None when this is the last one.
        """
        if self._next is None:
            return None
        return await self._next(cancel)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> T:
        return self.items[index]
