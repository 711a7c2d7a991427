"""
Shared error-handling helpers.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional


def format_context(extra: Optional[Mapping[str, Any]]) -> str:
    """Render ``{"org": "a", "item": None}`` as ``org=a``; ``None`` values are dropped."""
    if not extra:
        return ""
    return " ".join(f"{key}={value}" for key, value in extra.items() if value is not None)


def log_exception(
    logger: logging.Logger,
    msg: str,
    *,
    extra: Optional[Mapping[str, Any]] = None,
    exc: Optional[BaseException] = None,
) -> None:
    """
    Log a failure with key=value context and a stack trace.

    Without ``exc`` the exception currently being handled is logged.
    """
    text = f"{msg} {format_context(extra)}".rstrip()
    if exc is None:
        logger.exception(text)
        return
    logger.error("%s: %s", text, exc, exc_info=exc)
