"""
Liveness and database health.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...core.config import get_app_env
from ...core.db import get_db


router = APIRouter(prefix="/api/v1/health", tags=["health"])

logger = logging.getLogger("health")


@router.get("")
def health(request: Request, db: Session = Depends(get_db)) -> dict:
    database_ok = True
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Health check database probe failed: %s", exc)
        database_ok = False
    worker = getattr(request.app.state, "notification_worker", None)
    return {
        "status": "ok" if database_ok else "degraded",
        "env": get_app_env(),
        "database": database_ok,
        "notification_worker": bool(worker is not None and worker.is_alive()),
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }
