"""
Page/page_size handling for list endpoints.

``page_size`` is silently capped at ``API_MAX_PAGE_SIZE``; the total row
count and the effective paging are reported in ``X-Total-Count``,
``X-Page`` and ``X-Page-Size`` response headers.
"""

from __future__ import annotations

import os
from typing import Optional

from fastapi import Response
from sqlalchemy.orm import Query

FALLBACK_MAX_PAGE_SIZE = 200


def max_page_size() -> int:
    try:
        cap = int(os.getenv("API_MAX_PAGE_SIZE", str(FALLBACK_MAX_PAGE_SIZE)))
    except ValueError:
        return FALLBACK_MAX_PAGE_SIZE
    return cap if cap > 0 else FALLBACK_MAX_PAGE_SIZE


def clamp_page_size(page_size: int) -> int:
    return max(1, min(page_size, max_page_size()))


def paginate(query: Query, *, page: int, page_size: int, response: Optional[Response] = None) -> list:
    """Apply offset/limit to an ordered query and publish paging headers."""
    size = clamp_page_size(page_size)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * size).limit(size).all()
    if response is not None:
        response.headers.update(
            {"X-Total-Count": str(total), "X-Page": str(page), "X-Page-Size": str(size)}
        )
    return rows
