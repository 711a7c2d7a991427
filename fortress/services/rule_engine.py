"""
Automation rule engine for inventory change events.

Each change to an inventory row produces one event. The engine walks the
tenant's active rules in stored order, matches the rule trigger against
the event, checks the optional condition against the new row and, when
both pass, hands the rule to the action executor. Rules are independent:
a failing action is reported in its own outcome and evaluation carries on
with the next rule. There is no retry and no re-enqueueing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..models.automation_rule import AutomationRule
from ..schemas.automation_rule import condition_adapter
from ..schemas.change_event import ChangeEventIn, ProcessInventoryChangeOut, RuleOutcome
from .rule_actions import ActionError, ActionExecutor
from .stores import RuleStore, SqlActivityLogStore, SqlRuleStore

logger = logging.getLogger("rule_engine")

STOCK_LEVEL_CHANGE = "ON_STOCK_LEVEL_CHANGE"
NEW_INVENTORY_ITEM = "ON_NEW_INVENTORY_ITEM"

NO_RULES_MESSAGE = "No active automation rules to process."
PROCESSED_MESSAGE = "Automation rules processed."


@dataclass
class ChangeEvent:
    operation: str
    record: dict[str, Any]
    old_record: Optional[dict[str, Any]] = None

    @property
    def organization_id(self) -> Optional[str]:
        return self.record.get("organization_id")

    @classmethod
    def from_payload(cls, payload: ChangeEventIn) -> "ChangeEvent":
        record = payload.record.model_dump() if payload.record else {}
        old_record = payload.old_record.model_dump() if payload.old_record else None
        return cls(operation=payload.type, record=record, old_record=old_record)


@dataclass
class EvaluationStats:
    evaluated: int = 0
    fired: int = 0
    failed: int = 0
    skipped_rule_ids: list[str] = field(default_factory=list)


def trigger_matches(rule: AutomationRule, event: ChangeEvent) -> bool:
    if rule.trigger_type == STOCK_LEVEL_CHANGE:
        if event.operation != "UPDATE" or event.old_record is None:
            return False
        return event.old_record.get("quantity") != event.record.get("quantity")
    if rule.trigger_type == NEW_INVENTORY_ITEM:
        return event.operation == "INSERT"
    # Order-status and future trigger types never match inventory events.
    return False


def condition_met(rule: AutomationRule, event: ChangeEvent) -> bool:
    if not rule.condition_json:
        return True
    try:
        condition = condition_adapter.validate_python(rule.condition_json)
    except ValidationError:
        logger.warning(
            "Rule %s (%s) has an unsupported condition %s; not firing",
            rule.name,
            rule.id,
            rule.condition_json,
        )
        return False
    quantity = event.record.get("quantity")
    met = condition.is_met(quantity)
    logger.debug(
        "Rule %s condition quantity %s %s -> %s (current: %s)",
        rule.name,
        condition.operator,
        condition.value,
        met,
        quantity,
    )
    return met


def _action_type(rule: AutomationRule) -> str:
    action = rule.action_json if isinstance(rule.action_json, dict) else {}
    return str(action.get("type") or "UNKNOWN")


def evaluate_rules(
    event: ChangeEvent,
    rules: Iterable[AutomationRule],
    executor: ActionExecutor,
    stats: Optional[EvaluationStats] = None,
) -> list[RuleOutcome]:
    """
    Evaluate ``rules`` in order against one change event.

    Inactive rules and rules owned by another tenant are skipped without
    an outcome. Fired rules always produce exactly one outcome.
    """
    stats = stats or EvaluationStats()
    outcomes: list[RuleOutcome] = []
    for rule in rules:
        if not rule.is_active or rule.organization_id != event.organization_id:
            stats.skipped_rule_ids.append(rule.id)
            continue
        stats.evaluated += 1
        if not trigger_matches(rule, event):
            logger.debug("Rule %s (%s): trigger not matched", rule.name, rule.id)
            continue
        if not condition_met(rule, event):
            logger.debug("Rule %s (%s): condition not met", rule.name, rule.id)
            continue
        stats.fired += 1
        action_type = _action_type(rule)
        try:
            message = executor.execute(rule, event.record, event.old_record)
        except ActionError as exc:
            stats.failed += 1
            logger.error("Rule %s (%s) action %s failed: %s", rule.name, rule.id, action_type, exc)
            outcomes.append(RuleOutcome(ruleId=rule.id, action=action_type, status="failed", error=str(exc)))
            continue
        logger.info("Rule %s (%s) action %s executed: %s", rule.name, rule.id, action_type, message)
        outcomes.append(RuleOutcome(ruleId=rule.id, action=action_type, status="success", message=message))
    return outcomes


def process_inventory_change(
    db: Session,
    event: ChangeEvent,
    *,
    rule_store: Optional[RuleStore] = None,
    executor: Optional[ActionExecutor] = None,
) -> ProcessInventoryChangeOut:
    """
    Load the active rules of the event's tenant and evaluate them.

    Raises ``RuleStoreError`` when the rule set cannot be read; nothing is
    evaluated in that case. Successful action writes are committed once at
    the end of the pass.
    """
    organization_id = event.organization_id
    if not organization_id:
        raise ValueError("Missing record data or organization_id.")
    rule_store = rule_store or SqlRuleStore(db)
    rules = list(rule_store.active_rules(organization_id))
    if not rules:
        logger.info("No active automation rules found for organization=%s", organization_id)
        return ProcessInventoryChangeOut(message=NO_RULES_MESSAGE, results=[])
    executor = executor or ActionExecutor(SqlActivityLogStore(db), db=db)
    stats = EvaluationStats()
    outcomes = evaluate_rules(event, rules, executor, stats)
    db.commit()
    logger.info(
        "Automation pass org=%s op=%s item=%s rules=%s fired=%s failed=%s",
        organization_id,
        event.operation,
        event.record.get("id"),
        stats.evaluated,
        stats.fired,
        stats.failed,
    )
    return ProcessInventoryChangeOut(message=PROCESSED_MESSAGE, results=outcomes)
