"""
Pydantic schemas for automation rules.

Conditions and actions are closed unions: anything the engine cannot
evaluate or execute is rejected when the rule is saved instead of being
silently skipped at evaluation time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

TriggerType = Literal["ON_STOCK_LEVEL_CHANGE", "ON_NEW_INVENTORY_ITEM", "ON_ORDER_STATUS_CHANGE"]

INVENTORY_TRIGGERS = {"ON_STOCK_LEVEL_CHANGE", "ON_NEW_INVENTORY_ITEM"}


class QuantityCondition(BaseModel):
    field: Literal["quantity"]
    operator: Literal["lt", "eq", "gt"]
    value: float

    model_config = ConfigDict(extra="forbid")

    def is_met(self, quantity: Optional[float]) -> bool:
        if quantity is None:
            return False
        if self.operator == "lt":
            return quantity < self.value
        if self.operator == "gt":
            return quantity > self.value
        return quantity == self.value


class SendNotificationAction(BaseModel):
    type: Literal["SEND_NOTIFICATION"]
    message: str = Field(..., min_length=1, max_length=2000)

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Notification message is required")
        return value.strip()


class SendEmailAction(BaseModel):
    type: Literal["SEND_EMAIL"]
    to: str = Field(..., min_length=3, max_length=256)
    subject: str = Field(..., min_length=1, max_length=256)
    body: str = Field(..., min_length=1)


class CreatePurchaseOrderAction(BaseModel):
    type: Literal["CREATE_PURCHASE_ORDER"]
    itemId: Optional[str] = None
    quantity: int = Field(..., gt=0)


RuleAction = Annotated[
    Union[SendNotificationAction, SendEmailAction, CreatePurchaseOrderAction],
    Field(discriminator="type"),
]

condition_adapter: TypeAdapter[QuantityCondition] = TypeAdapter(QuantityCondition)
action_adapter: TypeAdapter[RuleAction] = TypeAdapter(RuleAction)


class AutomationRuleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: bool = True
    trigger_type: TriggerType
    condition_json: Optional[QuantityCondition] = None
    action_json: RuleAction

    @model_validator(mode="after")
    def _condition_matches_trigger(self) -> "AutomationRuleBase":
        if self.condition_json is not None and self.trigger_type not in INVENTORY_TRIGGERS:
            raise ValueError(f"Quantity conditions are not supported for {self.trigger_type}")
        return self


class AutomationRuleCreate(AutomationRuleBase):
    pass


class AutomationRuleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    trigger_type: Optional[TriggerType] = None
    condition_json: Optional[QuantityCondition] = None
    action_json: Optional[RuleAction] = None


class AutomationRuleOut(BaseModel):
    id: str
    organization_id: str
    user_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    is_active: bool
    trigger_type: str
    condition_json: Optional[dict] = None
    action_json: dict
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
