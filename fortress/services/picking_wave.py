"""
Picking-wave consolidation.

Order lines selected for one wave are merged into a single pick list: one
line per inventory item with the quantities summed, walked in picking-bin
folder order so a picker visits each folder once.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable

from sqlalchemy.orm import Session

from ..models.inventory import InventoryFolder, InventoryItem
from ..schemas.inventory import PickingWaveOut, PickLineIn, PickListLineOut

logger = logging.getLogger("picking_wave")

UNKNOWN_FOLDER = "Unknown Folder"


def _new_wave_id() -> str:
    return f"WAVE-{uuid.uuid4().hex[:8].upper()}"


def build_picking_wave(db: Session, organization_id: str, lines: Iterable[PickLineIn]) -> PickingWaveOut:
    lines = list(lines)
    if not lines:
        raise ValueError("Please select at least one order line to create a picking wave.")

    item_ids = {line.item_id for line in lines}
    items = {
        item.id: item
        for item in db.query(InventoryItem)
        .filter(InventoryItem.organization_id == organization_id, InventoryItem.id.in_(item_ids))
        .all()
    }
    folder_names = {
        folder.id: folder.name
        for folder in db.query(InventoryFolder).filter(InventoryFolder.organization_id == organization_id).all()
    }

    totals: dict[str, int] = {}
    skipped: list[str] = []
    for line in lines:
        if line.item_id not in items:
            if line.item_id not in skipped:
                logger.warning("Picking wave line skipped: item %s not found org=%s", line.item_id, organization_id)
                skipped.append(line.item_id)
            continue
        totals[line.item_id] = totals.get(line.item_id, 0) + line.quantity

    pick_list = []
    for item_id, quantity in totals.items():
        item = items[item_id]
        pick_list.append(
            PickListLineOut(
                item_id=item.id,
                item_name=item.name,
                sku=item.sku,
                folder_id=item.folder_id,
                folder_name=folder_names.get(item.folder_id, UNKNOWN_FOLDER),
                quantity_to_pick=quantity,
            )
        )
    pick_list.sort(key=lambda row: (row.folder_name.lower(), row.item_name.lower(), row.sku))

    wave = PickingWaveOut(wave_id=_new_wave_id(), lines=pick_list, skipped_item_ids=skipped)
    logger.info(
        "Picking wave %s built org=%s lines=%s items=%s skipped=%s",
        wave.wave_id,
        organization_id,
        len(lines),
        len(pick_list),
        len(skipped),
    )
    return wave
