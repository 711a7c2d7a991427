import datetime
import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:////tmp/fortress_test.db")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fortress.core.db import install_sqlite_savepoint_support
from fortress.models import Base
from fortress.models.activity_log import ActivityLog
from fortress.models.automation_rule import AutomationRule
from fortress.models.inventory import InventoryItem
from fortress.models.notification_outbox import NotificationOutbox
from fortress.models.organization import Organization
from fortress.models.purchase_order import PurchaseOrder
from fortress.services.rule_actions import ActionError, ActionExecutor, render_message_template
from fortress.services.rule_engine import ChangeEvent, process_inventory_change
from fortress.services.stores import SqlActivityLogStore


def _make_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    install_sqlite_savepoint_support(engine)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


def _seed(db):
    org = Organization(name="Acme")
    db.add(org)
    db.flush()
    item = InventoryItem(
        organization_id=org.id,
        name="Widget",
        sku="W-1",
        location="A1",
        picking_bin_quantity=3,
        overstock_quantity=2,
        reorder_level=10,
    )
    item.recompute_quantity()
    db.add(item)
    db.commit()
    return org, item


def _rule(org, action, *, name="rule", created_at=None) -> AutomationRule:
    return AutomationRule(
        organization_id=org.id,
        name=name,
        is_active=True,
        trigger_type="ON_STOCK_LEVEL_CHANGE",
        condition_json={"field": "quantity", "operator": "lt", "value": 10},
        action_json=action,
        created_at=created_at or datetime.datetime.now(datetime.timezone.utc),
    )


def _stock_drop(item, old_qty=12) -> ChangeEvent:
    record = item.to_record()
    return ChangeEvent(operation="UPDATE", record=record, old_record={**record, "quantity": old_qty})


def test_render_message_template_placeholders():
    record = {"name": "Widget", "sku": "W-1", "quantity": 7.0, "location": None}
    rendered = render_message_template(
        "{itemName} [{sku}] {quantity} (was {oldQuantity}) at {location} {unknown}",
        record,
        {"quantity": 12},
    )
    assert rendered == "Widget [W-1] 7 (was 12) at N/A {unknown}"


def test_render_message_template_leaves_no_placeholders():
    assert render_message_template("{itemName} low: {quantity}", {"name": "Widget", "quantity": 3}) == "Widget low: 3"


def test_render_message_template_without_old_record():
    assert render_message_template("was {oldQuantity}", {"quantity": 1}) == "was N/A"


def test_send_email_queues_outbox_row():
    db = _make_session()
    org, item = _seed(db)
    rule = _rule(
        org,
        {
            "type": "SEND_EMAIL",
            "to": "ops@example.com",
            "subject": "Low stock: {itemName}",
            "body": "{sku} is down to {quantity}",
        },
    )
    db.add(rule)
    db.commit()

    executor = ActionExecutor(SqlActivityLogStore(db), db=db)
    message = executor.execute(rule, item.to_record(), {"quantity": 12})
    db.commit()

    assert message == "Email queued to ops@example.com: Low stock: Widget"
    row = db.query(NotificationOutbox).one()
    assert row.channel == "EMAIL"
    assert row.status == "PENDING"
    assert row.rule_id == rule.id
    assert row.message == "W-1 is down to 5"
    entry = db.query(ActivityLog).one()
    assert entry.activity_type == "Automation Email Queued"
    assert entry.details["outbox_id"] == row.id


def test_purchase_order_defaults_to_triggering_item():
    db = _make_session()
    org, item = _seed(db)
    rule = _rule(org, {"type": "CREATE_PURCHASE_ORDER", "quantity": 25})
    db.add(rule)
    db.commit()

    message = ActionExecutor(SqlActivityLogStore(db), db=db).execute(rule, item.to_record())
    db.commit()

    order = db.query(PurchaseOrder).one()
    assert order.item_id == item.id
    assert order.quantity == 25
    assert order.status == "New Order"
    assert order.source_rule_id == rule.id
    assert message.startswith(f"Purchase order {order.id} created for 25 x Widget")


def test_purchase_order_for_unknown_item_raises():
    db = _make_session()
    org, item = _seed(db)
    rule = _rule(org, {"type": "CREATE_PURCHASE_ORDER", "itemId": "missing", "quantity": 5})
    db.add(rule)
    db.commit()

    with pytest.raises(ActionError):
        ActionExecutor(SqlActivityLogStore(db), db=db).execute(rule, item.to_record())
    assert db.query(PurchaseOrder).count() == 0


def test_failed_action_is_rolled_back_without_losing_siblings():
    db = _make_session()
    org, item = _seed(db)
    now = datetime.datetime.now(datetime.timezone.utc)
    failing = _rule(
        org,
        {"type": "CREATE_PURCHASE_ORDER", "itemId": "missing", "quantity": 5},
        name="reorder",
        created_at=now,
    )
    notify = _rule(
        org,
        {"type": "SEND_NOTIFICATION", "message": "{itemName} low: {quantity}"},
        name="notify",
        created_at=now + datetime.timedelta(seconds=1),
    )
    db.add_all([failing, notify])
    db.commit()

    result = process_inventory_change(db, _stock_drop(item))

    assert [(o.ruleId, o.status) for o in result.results] == [(failing.id, "failed"), (notify.id, "success")]
    assert result.results[1].message == "Widget low: 5"
    assert db.query(PurchaseOrder).count() == 0
    entries = db.query(ActivityLog).all()
    assert [e.activity_type for e in entries] == ["Automation Notification"]


def test_rules_of_other_tenants_are_not_loaded():
    db = _make_session()
    org, item = _seed(db)
    other = Organization(name="Other")
    db.add(other)
    db.flush()
    db.add(_rule(other, {"type": "SEND_NOTIFICATION", "message": "never"}))
    db.commit()

    result = process_inventory_change(db, _stock_drop(item))
    assert result.results == []
    assert db.query(ActivityLog).count() == 0
