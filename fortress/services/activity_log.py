"""
Tenant activity log: user-submitted entries and listing.

Free-form text coming from clients is stripped of script tags, inline
event handlers and ``data:`` URLs before it is stored, since the feed is
rendered as HTML by the dashboard.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..core.auth import UserContext
from ..models.activity_log import ActivityLog
from ..schemas.activity_log import ActivityLogIn
from .stores import SqlActivityLogStore

logger = logging.getLogger("activity_log")

_SCRIPT_RE = re.compile(r"<script\b[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_HANDLER_DQ_RE = re.compile(r"(\s)(on[a-zA-Z]+)=\"[^\"]*\"", re.IGNORECASE)
_HANDLER_SQ_RE = re.compile(r"(\s)(on[a-zA-Z]+)='[^']*'", re.IGNORECASE)
_HANDLER_BARE_RE = re.compile(r"(\s)(on[a-zA-Z]+)=[^\s\"'>]+", re.IGNORECASE)
_DATA_URL_DQ_RE = re.compile(r"(src|href)=\"data:[^\"]*\"", re.IGNORECASE)
_DATA_URL_SQ_RE = re.compile(r"(src|href)='data:[^']*'", re.IGNORECASE)
_DATA_URL_BARE_RE = re.compile(r"(src|href)=data:[^\s>]*", re.IGNORECASE)


def sanitize_html(value: str) -> str:
    sanitized = _SCRIPT_RE.sub("", value)
    sanitized = _HANDLER_DQ_RE.sub(r"\1", sanitized)
    sanitized = _HANDLER_SQ_RE.sub(r"\1", sanitized)
    sanitized = _HANDLER_BARE_RE.sub(r"\1", sanitized)
    sanitized = _DATA_URL_DQ_RE.sub(r'\1=""', sanitized)
    sanitized = _DATA_URL_SQ_RE.sub(r'\1=""', sanitized)
    sanitized = _DATA_URL_BARE_RE.sub(r'\1=""', sanitized)
    return sanitized


def _sanitize_details(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_html(value)
    if isinstance(value, dict):
        return {key: _sanitize_details(val) for key, val in value.items()}
    if isinstance(value, list):
        return [_sanitize_details(val) for val in value]
    return value


def log_activity(db: Session, user: UserContext, payload: ActivityLogIn) -> ActivityLog:
    if not user.organization_id:
        raise ValueError("organization_id is required")
    entry = SqlActivityLogStore(db).append(
        user_id=user.user_id,
        organization_id=user.organization_id,
        activity_type=payload.activity_type.strip(),
        description=sanitize_html(payload.description),
        details=_sanitize_details(payload.details or {}),
    )
    db.commit()
    db.refresh(entry)
    logger.info("Activity logged id=%s org=%s type=%s", entry.id, entry.organization_id, entry.activity_type)
    return entry


def activity_log_query(db: Session, organization_id: str, *, activity_type: Optional[str] = None):
    """Newest first, tenant scoped."""
    query = db.query(ActivityLog).filter(ActivityLog.organization_id == organization_id)
    if activity_type:
        query = query.filter(ActivityLog.activity_type == activity_type)
    return query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
