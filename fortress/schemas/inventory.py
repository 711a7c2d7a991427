"""
Pydantic schemas for inventory items, folders and stock discrepancies.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .change_event import RuleOutcome


def _clean_sku(value: str) -> str:
    sku = value.strip()
    if not sku:
        raise ValueError("SKU is required")
    return sku


class InventoryFolderIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class InventoryFolderOut(BaseModel):
    id: str
    organization_id: str
    name: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    location: Optional[str] = None
    folder_id: Optional[str] = None
    picking_bin_quantity: int = Field(default=0, ge=0)
    overstock_quantity: int = Field(default=0, ge=0)
    reorder_level: int = Field(default=0, ge=0)
    unit_cost: float = Field(default=0.0, ge=0)

    @field_validator("sku")
    @classmethod
    def _sku_not_blank(cls, value: str) -> str:
        return _clean_sku(value)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    sku: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    location: Optional[str] = None
    folder_id: Optional[str] = None
    picking_bin_quantity: Optional[int] = Field(default=None, ge=0)
    overstock_quantity: Optional[int] = Field(default=None, ge=0)
    reorder_level: Optional[int] = Field(default=None, ge=0)
    unit_cost: Optional[float] = Field(default=None, ge=0)

    @field_validator("sku")
    @classmethod
    def _sku_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _clean_sku(value)


class InventoryItemOut(BaseModel):
    id: str
    organization_id: str
    name: str
    sku: str
    description: Optional[str] = None
    location: Optional[str] = None
    folder_id: Optional[str] = None
    picking_bin_quantity: int
    overstock_quantity: int
    quantity: int
    reorder_level: int
    unit_cost: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InventoryWriteOut(BaseModel):
    item: Optional[InventoryItemOut] = None
    automation: list[RuleOutcome] = Field(default_factory=list)


class StockCountIn(BaseModel):
    item_id: str
    folder_id: str
    location_type: Literal["picking_bin", "overstock"]
    physical_count: int = Field(..., ge=0)
    reason: Optional[str] = Field(default=None, max_length=1000)


class DiscrepancyOut(BaseModel):
    id: str
    organization_id: str
    item_id: str
    folder_id: str
    user_id: Optional[str] = None
    location_type: str
    original_quantity: int
    counted_quantity: int
    difference: int
    reason: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PickLineIn(BaseModel):
    item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class PickListLineOut(BaseModel):
    item_id: str
    item_name: str
    sku: str
    folder_id: Optional[str] = None
    folder_name: str
    quantity_to_pick: int


class PickingWaveOut(BaseModel):
    wave_id: str
    lines: list[PickListLineOut] = Field(default_factory=list)
    skipped_item_ids: list[str] = Field(default_factory=list)
