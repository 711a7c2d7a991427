"""
Inventory change webhook.

The database change hook posts ``{type, record, old_record}`` here for
every write to ``inventory_items``; the tenant's active automation rules
are evaluated against it and the per-rule outcomes are returned.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user
from ...core.db import get_db
from ...core.errors import log_exception
from ...core.request_limits import enforce_json_body_limit
from ...schemas.change_event import ChangeEventIn, ProcessInventoryChangeOut
from ...services.rule_engine import ChangeEvent, process_inventory_change
from ...services.stores import RuleStoreError


router = APIRouter(prefix="/api/v1/automation", tags=["automation"])

logger = logging.getLogger("automation_api")

MISSING_RECORD = "Missing record data or organization_id."


async def read_json_body(request: Request) -> dict:
    raw = await request.body()
    if not raw.strip():
        raise HTTPException(status_code=400, detail=MISSING_RECORD)
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Failed to parse request data as JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object.")
    return data


@router.post("/process-inventory-change", response_model=ProcessInventoryChangeOut)
def process_inventory_change_hook(
    user: UserContext = Depends(get_current_user),
    _limit: None = Depends(enforce_json_body_limit),
    payload: dict = Depends(read_json_body),
    db: Session = Depends(get_db),
) -> ProcessInventoryChangeOut:
    try:
        event_in = ChangeEventIn.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid change event: {exc.error_count()} error(s)") from exc
    if event_in.record is None or not event_in.record.organization_id:
        logger.error("Change event without record or organization_id rejected")
        raise HTTPException(status_code=400, detail=MISSING_RECORD)

    organization_id = event_in.record.organization_id
    if not user.can_access(organization_id):
        raise HTTPException(status_code=403, detail="Forbidden: record belongs to another organization.")

    event = ChangeEvent.from_payload(event_in)
    logger.info(
        "Received inventory change op=%s org=%s item=%s by=%s",
        event.operation,
        organization_id,
        event.record.get("id"),
        user.username,
    )
    try:
        return process_inventory_change(db, event)
    except RuleStoreError as exc:
        db.rollback()
        log_exception(logger, "Error fetching automation rules", extra={"org": organization_id}, exc=exc)
        raise HTTPException(status_code=500, detail="Failed to fetch automation rules.") from exc
