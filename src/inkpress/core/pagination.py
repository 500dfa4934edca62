"""Pagination planner: slices ordered listings into fixed-size pages."""

import math
from collections.abc import Sequence
from typing import Any

from inkpress.core.models import Page
from inkpress.errors import InvalidPageSizeError


def paginate(items: Sequence[Any], page_size: int, stem: str = "index") -> tuple[Page, ...]:
    """Split ``items`` into pages of at most ``page_size`` in input order.

    An empty listing still yields one empty page so that list pages render.

    Args:
        items: Ordered items (records or authors).
        page_size: Items per page; must be a positive integer.
        stem: File stem of the listing, used for page filenames.

    Raises:
        InvalidPageSizeError: If ``page_size`` is not a positive integer.
    """
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
        raise InvalidPageSizeError(page_size)

    items = tuple(items)
    total = max(1, math.ceil(len(items) / page_size))
    return tuple(
        Page(
            items=items[(number - 1) * page_size : number * page_size],
            number=number,
            total_pages=total,
            stem=stem,
        )
        for number in range(1, total + 1)
    )
