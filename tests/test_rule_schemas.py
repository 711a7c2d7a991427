import pytest
from pydantic import ValidationError

from fortress.schemas.automation_rule import AutomationRuleCreate, action_adapter
from fortress.schemas.change_event import ChangeEventIn


def _payload(**overrides) -> dict:
    payload = {
        "name": "Low stock",
        "trigger_type": "ON_STOCK_LEVEL_CHANGE",
        "condition_json": {"field": "quantity", "operator": "lt", "value": 10},
        "action_json": {"type": "SEND_NOTIFICATION", "message": "  {itemName} is low  "},
    }
    payload.update(overrides)
    return payload


def test_valid_rule_parses():
    rule = AutomationRuleCreate.model_validate(_payload())
    assert rule.is_active is True
    assert rule.condition_json.operator == "lt"
    assert rule.action_json.model_dump() == {"type": "SEND_NOTIFICATION", "message": "{itemName} is low"}


def test_condition_rejected_for_order_status_trigger():
    with pytest.raises(ValidationError):
        AutomationRuleCreate.model_validate(_payload(trigger_type="ON_ORDER_STATUS_CHANGE"))


def test_order_status_trigger_without_condition_is_allowed():
    rule = AutomationRuleCreate.model_validate(_payload(trigger_type="ON_ORDER_STATUS_CHANGE", condition_json=None))
    assert rule.condition_json is None


@pytest.mark.parametrize(
    "condition",
    [
        {"field": "quantity", "operator": "gte", "value": 10},
        {"field": "reorder_level", "operator": "lt", "value": 10},
        {"field": "quantity", "operator": "lt", "value": 10, "unit": "cases"},
    ],
)
def test_unsupported_conditions_rejected(condition):
    with pytest.raises(ValidationError):
        AutomationRuleCreate.model_validate(_payload(condition_json=condition))


def test_unknown_trigger_rejected():
    with pytest.raises(ValidationError):
        AutomationRuleCreate.model_validate(_payload(trigger_type="ON_PRICE_CHANGE"))


@pytest.mark.parametrize(
    "action",
    [
        {"type": "SEND_NOTIFICATION", "message": "   "},
        {"type": "SEND_SMS", "message": "hi"},
        {"type": "CREATE_PURCHASE_ORDER", "quantity": 0},
        {"type": "SEND_EMAIL", "to": "ops@example.com", "subject": "x"},
    ],
)
def test_invalid_actions_rejected(action):
    with pytest.raises(ValidationError):
        action_adapter.validate_python(action)


def test_purchase_order_item_is_optional():
    action = action_adapter.validate_python({"type": "CREATE_PURCHASE_ORDER", "quantity": 3})
    assert action.itemId is None
    assert action.quantity == 3


def test_change_event_type_is_case_insensitive():
    event = ChangeEventIn.model_validate(
        {"type": "update", "record": {"organization_id": "org-1", "quantity": 4, "color": "red"}}
    )
    assert event.type == "UPDATE"
    assert event.record.model_dump()["color"] == "red"


def test_change_event_rejects_unknown_operation():
    with pytest.raises(ValidationError):
        ChangeEventIn.model_validate({"type": "TRUNCATE", "record": {"organization_id": "org-1"}})
