"""
ORM models for inventory items and the storage folders that hold them.

An item's stock is split between its picking bin and overstock; the
``quantity`` column is always the sum of the two and is the value the
automation engine compares.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class InventoryFolder(Base):
    __tablename__ = "inventory_folders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id: Mapped[str] = mapped_column(String(36), ForeignKey("organizations.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id: Mapped[str] = mapped_column(String(36), ForeignKey("organizations.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    sku: Mapped[str] = mapped_column(String(128))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    folder_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("inventory_folders.id"), nullable=True)
    picking_bin_quantity: Mapped[int] = mapped_column(Integer, default=0)
    overstock_quantity: Mapped[int] = mapped_column(Integer, default=0)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    reorder_level: Mapped[int] = mapped_column(Integer, default=0)
    unit_cost: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("organization_id", "sku", name="uq_inventory_items_org_sku"),
    )

    def recompute_quantity(self) -> None:
        self.quantity = int(self.picking_bin_quantity or 0) + int(self.overstock_quantity or 0)

    def to_record(self) -> dict:
        """Row snapshot in the shape carried by change events."""
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "sku": self.sku,
            "quantity": self.quantity,
            "picking_bin_quantity": self.picking_bin_quantity,
            "overstock_quantity": self.overstock_quantity,
            "location": self.location,
            "folder_id": self.folder_id,
            "reorder_level": self.reorder_level,
        }
