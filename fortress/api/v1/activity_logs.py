"""
API endpoints for the tenant activity feed.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ...core.auth import UserContext, require_tenant_user
from ...core.db import get_db
from ...core.pagination import paginate
from ...schemas.activity_log import ActivityLogIn, ActivityLogOut
from ...services.activity_log import activity_log_query, log_activity


router = APIRouter(prefix="/api/v1/activity-logs", tags=["activity-logs"])


@router.post("", response_model=ActivityLogOut, status_code=201)
def create_activity_log(
    payload: ActivityLogIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> ActivityLogOut:
    try:
        entry = log_activity(db, user, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ActivityLogOut.model_validate(entry)


@router.get("", response_model=list[ActivityLogOut])
def get_activity_logs(
    response: Response,
    activity_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> list[ActivityLogOut]:
    query = activity_log_query(db, user.organization_id, activity_type=activity_type)
    rows = paginate(query, page=page, page_size=page_size, response=response)
    return [ActivityLogOut.model_validate(r) for r in rows]
