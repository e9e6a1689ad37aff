"""Lazy, restartable pagination over page-numbered GitHub listings.

A Paginator wraps a ``fetch_page(page, per_page)`` coroutine and yields
items on demand. Iteration stops at the first short page, or when the item
or page ceiling is reached, whichever comes first. Each page fetch goes
through the retrier. Iterating a Paginator again starts over from page 1.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Generic, TypeVar

from .retry import RetryObserver, RetryPolicy, github_retry_policy, log_retry, retry

T = TypeVar("T")

PageFetcher = Callable[[int, int], Awaitable[list[T]]]


class Paginator(Generic[T]):
    """Async iterable over every item of a paginated listing.

    Usage:
        paginator = Paginator(fetch, per_page=100, max_items=500)
        async for pull in paginator:
            ...
        everything = await paginator.collect()  # fetches again from page 1
    """

    def __init__(
        self,
        fetch_page: PageFetcher[T],
        *,
        per_page: int = 100,
        max_items: int | None = None,
        max_pages: int | None = 1000,
        retry_policy: RetryPolicy | None = None,
        on_retry: RetryObserver | None = log_retry,
    ) -> None:
        if per_page < 1:
            raise ValueError("per_page must be at least 1")
        self._fetch_page = fetch_page
        self._per_page = per_page
        self._max_items = max_items
        self._max_pages = max_pages
        self._retry_policy = retry_policy or github_retry_policy()
        self._on_retry = on_retry
        self.pages_fetched = 0

    @property
    def per_page(self) -> int:
        return self._per_page

    async def _fetch(self, page: int) -> list[T]:
        return await retry(
            lambda: self._fetch_page(page, self._per_page),
            self._retry_policy,
            on_retry=self._on_retry,
        )

    async def pages(self) -> AsyncIterator[list[T]]:
        """Yield one list per page, truncated to the item ceiling."""
        self.pages_fetched = 0
        seen = 0
        page = 1
        while self._max_pages is None or page <= self._max_pages:
            items = await self._fetch(page)
            self.pages_fetched += 1
            full_page = len(items) >= self._per_page

            if self._max_items is not None:
                items = items[: self._max_items - seen]
            seen += len(items)
            if items:
                yield items

            if not full_page:
                return
            if self._max_items is not None and seen >= self._max_items:
                return
            page += 1

    async def __aiter__(self) -> AsyncIterator[T]:
        async for items in self.pages():
            for item in items:
                yield item

    async def collect(self) -> list[T]:
        """Fetch every page (up to the ceilings) into one list."""
        return [item async for item in self]
