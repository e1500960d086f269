"""Aggregation of paged listings into one complete collection."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from ..models import Page

PAGE_SIZE = 500


async def collect_all(
    fetch_page: Callable[[int, int], Awaitable[Page]],
    *,
    page_size: int = PAGE_SIZE,
) -> Page:
    """Drive ``fetch_page(limit, offset)`` until the listing is exhausted.

    Stops once the accumulated items reach the reported ``total`` or a page
    comes back empty. The server's total is only a hint; the empty page is
    what guarantees termination.

    Returns:
        A page holding every item with ``offset=0`` and
        ``limit == total == len(items)``.
    """
    items: list[Any] = []
    offset = 0
    while True:
        page = await fetch_page(page_size, offset)
        items.extend(page.items)
        if not page.items or len(items) >= page.total:
            break
        offset = page.offset + (page.limit or len(page.items))
    return Page.of(items)
