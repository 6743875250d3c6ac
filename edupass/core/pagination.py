"""Page/limit pagination over in-memory result lists.

Listings are read from a single partition (or a secondary index) and sliced
here, so the envelope is the same everywhere:
``{docs, totalDocs, limit, page, totalPages}`` with a 1-indexed ``page``.
"""

import math
from collections.abc import Sequence
from typing import Annotated, Generic, TypeVar

from fastapi import Depends, Query

from edupass.config import get_settings
from edupass.core.schemas import ApiModel


T = TypeVar("T")


class Page(ApiModel, Generic[T]):
    docs: list[T]
    total_docs: int
    limit: int
    page: int
    total_pages: int


class PageParams(ApiModel):
    page: int = 1
    limit: int = 10


def paginate(items: Sequence[T], page: int = 1, limit: int | None = None) -> Page[T]:
    """Slice ``items`` into the requested page.

    ``page`` below 1 is treated as 1; ``limit`` is clamped to
    ``[1, pagination_max_limit]`` and defaults to ``pagination_default_limit``.
    A page past the end yields empty ``docs`` with the real totals.
    """
    settings = get_settings()
    if limit is None:
        limit = settings.pagination_default_limit
    limit = max(1, min(limit, settings.pagination_max_limit))
    page = max(1, page)

    total_docs = len(items)
    start = (page - 1) * limit
    return Page(
        docs=list(items[start : start + limit]),
        total_docs=total_docs,
        limit=limit,
        page=page,
        total_pages=math.ceil(total_docs / limit) if total_docs else 0,
    )


def get_page_params(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> PageParams:
    """Query-string pagination dependency."""
    if limit is None:
        limit = get_settings().pagination_default_limit
    return PageParams(page=page, limit=limit)


PageParamsDep = Annotated[PageParams, Depends(get_page_params)]
