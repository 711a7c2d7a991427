"""
Inventory item writes.

Every committed insert, update or delete is turned into a change event and
fed to the automation engine in-process, the same payload the external
database hook posts to the webhook.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from sqlalchemy.orm import Session

from ..core.errors import log_exception
from ..models.inventory import InventoryFolder, InventoryItem
from ..schemas.change_event import RuleOutcome
from ..schemas.inventory import InventoryItemCreate, InventoryItemUpdate
from .rule_engine import ChangeEvent, process_inventory_change
from .stores import RuleStoreError

logger = logging.getLogger("inventory")


class DuplicateSkuError(ValueError):
    pass


def _automation_enabled() -> bool:
    return os.getenv("AUTOMATION_ON_INVENTORY_WRITE", "true").lower() in {"1", "true", "yes"}


def emit_change(
    db: Session,
    operation: str,
    record: dict,
    old_record: Optional[dict] = None,
) -> list[RuleOutcome]:
    """Run automation for a committed write. Engine failures never undo the write."""
    if not _automation_enabled():
        return []
    event = ChangeEvent(operation=operation, record=record, old_record=old_record)
    try:
        return process_inventory_change(db, event).results
    except RuleStoreError as exc:
        db.rollback()
        log_exception(
            logger,
            "Automation pass aborted",
            extra={"org": record.get("organization_id"), "item": record.get("id"), "op": operation},
            exc=exc,
        )
        return []


def get_item(db: Session, organization_id: str, item_id: str) -> InventoryItem:
    item = (
        db.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.organization_id == organization_id)
        .first()
    )
    if item is None:
        raise LookupError("Inventory item not found")
    return item


def _check_folder(db: Session, organization_id: str, folder_id: Optional[str]) -> None:
    if not folder_id:
        return
    folder = db.get(InventoryFolder, folder_id)
    if folder is None or folder.organization_id != organization_id:
        raise LookupError("Inventory folder not found")


def _check_sku(db: Session, organization_id: str, sku: str, exclude_id: Optional[str] = None) -> None:
    query = db.query(InventoryItem.id).filter(
        InventoryItem.organization_id == organization_id,
        InventoryItem.sku == sku,
    )
    if exclude_id:
        query = query.filter(InventoryItem.id != exclude_id)
    if query.first() is not None:
        raise DuplicateSkuError(f"SKU {sku} already exists")


def create_item(
    db: Session,
    organization_id: str,
    payload: InventoryItemCreate,
) -> tuple[InventoryItem, list[RuleOutcome]]:
    sku = payload.sku.strip()
    _check_sku(db, organization_id, sku)
    _check_folder(db, organization_id, payload.folder_id)
    item = InventoryItem(organization_id=organization_id, **payload.model_dump(exclude={"sku"}), sku=sku)
    item.recompute_quantity()
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Inventory item created id=%s org=%s sku=%s qty=%s", item.id, organization_id, item.sku, item.quantity)
    outcomes = emit_change(db, "INSERT", item.to_record())
    return item, outcomes


def update_item(
    db: Session,
    item: InventoryItem,
    payload: InventoryItemUpdate,
) -> tuple[InventoryItem, list[RuleOutcome]]:
    old_record = item.to_record()
    data = payload.model_dump(exclude_unset=True)
    if data.get("sku"):
        data["sku"] = data["sku"].strip()
        _check_sku(db, item.organization_id, data["sku"], exclude_id=item.id)
    if "folder_id" in data:
        _check_folder(db, item.organization_id, data["folder_id"])
    for key, value in data.items():
        if value is None and key in {"name", "sku", "picking_bin_quantity", "overstock_quantity", "reorder_level", "unit_cost"}:
            continue
        setattr(item, key, value)
    item.recompute_quantity()
    db.add(item)
    db.commit()
    db.refresh(item)
    outcomes = emit_change(db, "UPDATE", item.to_record(), old_record)
    return item, outcomes


def adjust_bin_quantity(db: Session, item: InventoryItem, location_type: str, quantity: int) -> dict:
    """Set one stock bucket without committing. Returns the pre-change record."""
    old_record = item.to_record()
    if location_type == "picking_bin":
        item.picking_bin_quantity = quantity
    elif location_type == "overstock":
        item.overstock_quantity = quantity
    else:
        raise ValueError("Invalid location_type provided.")
    item.recompute_quantity()
    db.add(item)
    return old_record


def delete_item(db: Session, item: InventoryItem) -> list[RuleOutcome]:
    old_record = item.to_record()
    db.delete(item)
    db.commit()
    logger.info("Inventory item deleted id=%s org=%s", old_record["id"], old_record["organization_id"])
    return emit_change(db, "DELETE", old_record, old_record)


def create_folder(db: Session, organization_id: str, name: str) -> InventoryFolder:
    folder = InventoryFolder(organization_id=organization_id, name=name.strip())
    db.add(folder)
    db.commit()
    db.refresh(folder)
    return folder
