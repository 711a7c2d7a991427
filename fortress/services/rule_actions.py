"""
Action executor for automation rules.

One arm per action type. Every action appends to the tenant activity log
so fired rules are always visible in the notification feed; the email and
purchase-order arms additionally write their own rows. Each action runs in
a SAVEPOINT when a session is available, so a failed write is undone
without touching the outcome of sibling rules.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..models.automation_rule import AutomationRule
from ..models.inventory import InventoryItem
from ..models.purchase_order import PurchaseOrder
from ..schemas.automation_rule import (
    CreatePurchaseOrderAction,
    SendEmailAction,
    SendNotificationAction,
    action_adapter,
)
from .notification_outbox import enqueue_email
from .stores import ActivityLogStore

logger = logging.getLogger("rule_actions")

NOTIFICATION_ACTIVITY = "Automation Notification"
EMAIL_ACTIVITY = "Automation Email Queued"
PURCHASE_ORDER_ACTIVITY = "Automation Purchase Order"

PLACEHOLDER_FALLBACK = "N/A"


class ActionError(RuntimeError):
    """Raised when a fired rule's action could not be carried out."""


def _format_value(value: Any) -> str:
    if value is None or value == "":
        return PLACEHOLDER_FALLBACK
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_message_template(
    template: str,
    record: Mapping[str, Any],
    old_record: Optional[Mapping[str, Any]] = None,
) -> str:
    """Plain textual placeholder substitution; unknown braces are left alone."""
    old = old_record or {}
    replacements = {
        "{itemName}": _format_value(record.get("name")),
        "{sku}": _format_value(record.get("sku")),
        "{quantity}": _format_value(record.get("quantity")),
        "{oldQuantity}": _format_value(old.get("quantity")),
        "{location}": _format_value(record.get("location")),
    }
    message = template
    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return message


def _event_details(rule: AutomationRule, record: Mapping[str, Any], old_record: Optional[Mapping[str, Any]]) -> dict:
    return {
        "rule_id": rule.id,
        "rule_name": rule.name,
        "item_id": record.get("id"),
        "item_name": record.get("name"),
        "sku": record.get("sku"),
        "current_quantity": record.get("quantity"),
        "old_quantity": (old_record or {}).get("quantity"),
        "location": record.get("location"),
    }


class ActionExecutor:
    def __init__(self, log_store: ActivityLogStore, *, db: Optional[Session] = None) -> None:
        self.log_store = log_store
        self.db = db

    def _savepoint(self):
        if self.db is None:
            return contextlib.nullcontext()
        return self.db.begin_nested()

    def execute(
        self,
        rule: AutomationRule,
        record: Mapping[str, Any],
        old_record: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Run the rule's action and return a human-readable result message."""
        try:
            action = action_adapter.validate_python(rule.action_json or {})
        except ValidationError as exc:
            raise ActionError(f"Unsupported action definition: {exc.error_count()} error(s)") from exc
        try:
            with self._savepoint():
                if isinstance(action, SendNotificationAction):
                    return self._send_notification(rule, action, record, old_record)
                if isinstance(action, SendEmailAction):
                    return self._send_email(rule, action, record, old_record)
                if isinstance(action, CreatePurchaseOrderAction):
                    return self._create_purchase_order(rule, action, record, old_record)
        except ActionError:
            raise
        except Exception as exc:
            raise ActionError(str(exc) or type(exc).__name__) from exc
        raise ActionError(f"Unsupported action type: {action.type}")

    def _send_notification(self, rule, action: SendNotificationAction, record, old_record) -> str:
        message = render_message_template(action.message, record, old_record)
        self.log_store.append(
            user_id=rule.user_id,
            organization_id=rule.organization_id,
            activity_type=NOTIFICATION_ACTIVITY,
            description=message,
            details=_event_details(rule, record, old_record),
        )
        return message

    def _require_db(self, action_type: str) -> Session:
        if self.db is None:
            raise ActionError(f"{action_type} requires a database session")
        return self.db

    def _send_email(self, rule, action: SendEmailAction, record, old_record) -> str:
        db = self._require_db(action.type)
        subject = render_message_template(action.subject, record, old_record)
        body = render_message_template(action.body, record, old_record)
        row = enqueue_email(
            db,
            organization_id=rule.organization_id,
            rule_id=rule.id,
            to=action.to,
            subject=subject,
            body=body,
        )
        message = f"Email queued to {row.target}: {subject}"
        details = _event_details(rule, record, old_record)
        details["outbox_id"] = row.id
        self.log_store.append(
            user_id=rule.user_id,
            organization_id=rule.organization_id,
            activity_type=EMAIL_ACTIVITY,
            description=message,
            details=details,
        )
        return message

    def _create_purchase_order(self, rule, action: CreatePurchaseOrderAction, record, old_record) -> str:
        db = self._require_db(action.type)
        item_id = action.itemId or record.get("id")
        if not item_id:
            raise ActionError("No inventory item to order")
        item = (
            db.query(InventoryItem)
            .filter(InventoryItem.id == item_id, InventoryItem.organization_id == rule.organization_id)
            .first()
        )
        if item is None:
            raise ActionError(f"Inventory item {item_id} not found")
        order = PurchaseOrder(
            organization_id=rule.organization_id,
            item_id=item.id,
            quantity=action.quantity,
            status="New Order",
            notes=f"Raised by automation rule '{rule.name}'",
            source_rule_id=rule.id,
        )
        db.add(order)
        db.flush()
        message = f"Purchase order {order.id} created for {action.quantity} x {item.name} ({item.sku})"
        details = _event_details(rule, record, old_record)
        details.update({"purchase_order_id": order.id, "order_quantity": action.quantity})
        self.log_store.append(
            user_id=rule.user_id,
            organization_id=rule.organization_id,
            activity_type=PURCHASE_ORDER_ACTIVITY,
            description=message,
            details=details,
        )
        return message
