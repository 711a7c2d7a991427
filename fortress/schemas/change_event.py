"""
Pydantic schemas for inventory change events (database change hook payloads).
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

OperationType = Literal["INSERT", "UPDATE", "DELETE"]


class InventoryRecord(BaseModel):
    id: Optional[str] = None
    organization_id: Optional[str] = None
    name: Optional[str] = None
    sku: Optional[str] = None
    quantity: Optional[Union[int, float]] = None
    location: Optional[str] = None

    # Hooks send the whole row; unknown columns ride along untouched.
    model_config = ConfigDict(extra="allow")


class ChangeEventIn(BaseModel):
    type: OperationType
    record: Optional[InventoryRecord] = None
    old_record: Optional[InventoryRecord] = None

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value):
        return value.upper() if isinstance(value, str) else value


class RuleOutcome(BaseModel):
    ruleId: str
    action: str
    status: Literal["success", "failed"]
    message: Optional[str] = None
    error: Optional[str] = None


class ProcessInventoryChangeOut(BaseModel):
    message: str
    results: list[RuleOutcome] = Field(default_factory=list)
