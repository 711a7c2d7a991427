"""
API endpoints for managing tenant automation rules.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...core.auth import ADMIN_ROLE, UserContext, require_roles, require_tenant_user
from ...core.db import get_db
from ...core.pagination import paginate
from ...models.automation_rule import AutomationRule
from ...schemas.automation_rule import (
    AutomationRuleBase,
    AutomationRuleCreate,
    AutomationRuleOut,
    AutomationRuleUpdate,
)


router = APIRouter(prefix="/api/v1/automation-rules", tags=["automation-rules"])

logger = logging.getLogger("automation_rules_api")


def _get_rule_for_user(db: Session, rule_id: str, user: UserContext) -> AutomationRule:
    rule = (
        db.query(AutomationRule)
        .filter(AutomationRule.id == rule_id, AutomationRule.organization_id == user.organization_id)
        .first()
    )
    if not rule:
        raise HTTPException(status_code=404, detail="Rule not found")
    return rule


@router.get("", response_model=list[AutomationRuleOut])
def list_automation_rules(
    response: Response,
    trigger_type: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> list[AutomationRuleOut]:
    query = db.query(AutomationRule).filter(AutomationRule.organization_id == user.organization_id)
    if trigger_type:
        query = query.filter(AutomationRule.trigger_type == trigger_type)
    if is_active is not None:
        query = query.filter(AutomationRule.is_active == is_active)
    query = query.order_by(AutomationRule.created_at.asc(), AutomationRule.id.asc())
    rows = paginate(query, page=page, page_size=page_size, response=response)
    return [AutomationRuleOut.model_validate(r) for r in rows]


@router.get("/{rule_id}", response_model=AutomationRuleOut)
def get_automation_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> AutomationRuleOut:
    return AutomationRuleOut.model_validate(_get_rule_for_user(db, rule_id, user))


@router.post("", response_model=AutomationRuleOut, status_code=201)
def create_automation_rule(
    payload: AutomationRuleCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles(ADMIN_ROLE)),
) -> AutomationRuleOut:
    rule = AutomationRule(
        organization_id=user.organization_id,
        user_id=user.user_id,
        name=payload.name.strip(),
        description=payload.description,
        is_active=payload.is_active,
        trigger_type=payload.trigger_type,
        condition_json=payload.condition_json.model_dump() if payload.condition_json else None,
        action_json=payload.action_json.model_dump(exclude_none=True),
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info("Automation rule created id=%s org=%s trigger=%s", rule.id, rule.organization_id, rule.trigger_type)
    return AutomationRuleOut.model_validate(rule)


@router.patch("/{rule_id}", response_model=AutomationRuleOut)
def update_automation_rule(
    rule_id: str,
    payload: AutomationRuleUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles(ADMIN_ROLE)),
) -> AutomationRuleOut:
    rule = _get_rule_for_user(db, rule_id, user)
    data = payload.model_dump(exclude_unset=True)
    merged = {
        "name": rule.name,
        "description": rule.description,
        "is_active": rule.is_active,
        "trigger_type": rule.trigger_type,
        "condition_json": rule.condition_json,
        "action_json": rule.action_json,
    }
    merged.update(data)
    # Re-validate the merged rule so a partial update cannot pair a
    # condition with a trigger that does not support it.
    try:
        validated = AutomationRuleBase.model_validate(merged)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    rule.name = validated.name.strip()
    rule.description = validated.description
    rule.is_active = validated.is_active
    rule.trigger_type = validated.trigger_type
    rule.condition_json = validated.condition_json.model_dump() if validated.condition_json else None
    rule.action_json = validated.action_json.model_dump(exclude_none=True)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return AutomationRuleOut.model_validate(rule)


@router.delete("/{rule_id}", status_code=204)
def delete_automation_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles(ADMIN_ROLE)),
) -> Response:
    rule = _get_rule_for_user(db, rule_id, user)
    db.delete(rule)
    db.commit()
    logger.info("Automation rule deleted id=%s org=%s", rule_id, user.organization_id)
    return Response(status_code=204)
