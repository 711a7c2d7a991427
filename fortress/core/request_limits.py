"""Upper bound on JSON request bodies (``MAX_JSON_BODY_BYTES``)."""

from __future__ import annotations

import os

from fastapi import HTTPException, Request

DEFAULT_MAX_JSON_BODY = 1024 * 1024
MIN_MAX_JSON_BODY = 1024


def max_json_body_bytes() -> int:
    try:
        limit = int(os.getenv("MAX_JSON_BODY_BYTES", str(DEFAULT_MAX_JSON_BODY)))
    except ValueError:
        limit = DEFAULT_MAX_JSON_BODY
    return max(limit, MIN_MAX_JSON_BODY)


async def enforce_json_body_limit(request: Request) -> None:
    limit = max_json_body_bytes()
    declared = request.headers.get("content-length")
    if declared is None:
        # Chunked uploads carry no length; measure the buffered body instead.
        too_large = len(await request.body()) > limit
    else:
        try:
            too_large = int(declared) > limit
        except ValueError:
            too_large = False
    if too_large:
        raise HTTPException(status_code=413, detail="Payload too large")
