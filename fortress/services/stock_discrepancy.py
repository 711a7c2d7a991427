"""
Cycle-count reconciliation.

A counter submits the physical count for one stock bucket of an item.
When it differs from the system quantity the difference is recorded as a
pending discrepancy, the bucket is overwritten with the counted value and
a ``Stock Discrepancy`` entry is written to the activity log. The stock
change then runs through automation like any other inventory update.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..core.auth import UserContext
from ..models.app_user import AppUser
from ..models.discrepancy import Discrepancy
from ..models.inventory import InventoryFolder, InventoryItem
from ..schemas.inventory import StockCountIn
from .inventory import adjust_bin_quantity, emit_change
from .stores import SqlActivityLogStore

logger = logging.getLogger("stock_discrepancy")

DISCREPANCY_ACTIVITY = "Stock Discrepancy"
DEFAULT_REASON = "Cycle Count Adjustment"


def _reporter_name(db: Session, user: UserContext) -> str:
    if user.user_id:
        profile = db.get(AppUser, user.user_id)
        if profile is not None:
            return profile.full_name or profile.email or profile.username
    return user.username or "unknown"


def _system_quantity(item: InventoryItem, location_type: str) -> int:
    if location_type == "picking_bin":
        return int(item.picking_bin_quantity or 0)
    if location_type == "overstock":
        return int(item.overstock_quantity or 0)
    raise ValueError("Invalid location_type provided.")


def handle_stock_discrepancy(db: Session, user: UserContext, payload: StockCountIn) -> dict[str, Any]:
    organization_id = user.organization_id
    item = (
        db.query(InventoryItem)
        .filter(InventoryItem.id == payload.item_id, InventoryItem.organization_id == organization_id)
        .first()
    )
    if item is None:
        raise LookupError("Inventory item not found or access denied.")

    original_quantity = _system_quantity(item, payload.location_type)
    if payload.physical_count == original_quantity:
        return {"message": "No discrepancy detected. Quantities match.", "automation": []}

    difference = payload.physical_count - original_quantity
    reason = payload.reason or DEFAULT_REASON
    discrepancy = Discrepancy(
        organization_id=organization_id,
        item_id=item.id,
        folder_id=payload.folder_id,
        user_id=user.user_id,
        location_type=payload.location_type,
        original_quantity=original_quantity,
        counted_quantity=payload.physical_count,
        difference=difference,
        reason=reason,
        status="pending",
    )
    db.add(discrepancy)
    db.flush()

    old_record = adjust_bin_quantity(db, item, payload.location_type, payload.physical_count)

    folder = db.get(InventoryFolder, payload.folder_id)
    folder_name = folder.name if folder is not None and folder.organization_id == organization_id else payload.folder_id
    reporter = _reporter_name(db, user)
    notification = (
        f"Stock Discrepancy: {item.name} ({item.sku}) at {folder_name} ({payload.location_type}). "
        f"Counted: {payload.physical_count}, System: {original_quantity}. "
        f"Difference: {difference}. Reported by {reporter}."
    )
    SqlActivityLogStore(db).append(
        user_id=user.user_id,
        organization_id=organization_id,
        activity_type=DISCREPANCY_ACTIVITY,
        description=notification,
        details={
            "discrepancy_id": discrepancy.id,
            "item_id": item.id,
            "item_name": item.name,
            "sku": item.sku,
            "folder_id": payload.folder_id,
            "location_type": payload.location_type,
            "original_quantity": original_quantity,
            "counted_quantity": payload.physical_count,
            "difference": difference,
            "reason": reason,
            "reported_by": reporter,
        },
    )
    db.commit()
    db.refresh(discrepancy)
    db.refresh(item)
    logger.info(
        "Discrepancy recorded id=%s item=%s location=%s difference=%s",
        discrepancy.id,
        item.id,
        payload.location_type,
        difference,
    )

    automation = emit_change(db, "UPDATE", item.to_record(), old_record)
    return {
        "message": "Discrepancy recorded and inventory updated.",
        "discrepancy": discrepancy,
        "notification": notification,
        "automation": automation,
    }


def discrepancy_query(db: Session, organization_id: str, *, status: Optional[str] = None):
    query = db.query(Discrepancy).filter(Discrepancy.organization_id == organization_id)
    if status:
        query = query.filter(Discrepancy.status == status)
    return query.order_by(Discrepancy.created_at.desc(), Discrepancy.id.desc())
