"""
API endpoints for inventory items and folders.

Writes run the tenant's automation rules in-process and return their
outcomes alongside the item.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ...core.auth import ADMIN_ROLE, MANAGER_ROLE, UserContext, require_roles, require_tenant_user
from ...core.db import get_db
from ...core.pagination import paginate
from ...models.inventory import InventoryFolder, InventoryItem
from ...schemas.inventory import (
    InventoryFolderIn,
    InventoryFolderOut,
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    InventoryWriteOut,
    PickingWaveOut,
    PickLineIn,
)
from ...services import inventory as inventory_service
from ...services.inventory import DuplicateSkuError
from ...services.picking_wave import build_picking_wave


router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])

_writer = require_roles(ADMIN_ROLE, MANAGER_ROLE)


def _load_item(db: Session, user: UserContext, item_id: str) -> InventoryItem:
    try:
        return inventory_service.get_item(db, user.organization_id, item_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/folders", response_model=list[InventoryFolderOut])
def list_folders(
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> list[InventoryFolderOut]:
    rows = (
        db.query(InventoryFolder)
        .filter(InventoryFolder.organization_id == user.organization_id)
        .order_by(InventoryFolder.name.asc())
        .all()
    )
    return [InventoryFolderOut.model_validate(r) for r in rows]


@router.post("/folders", response_model=InventoryFolderOut, status_code=201)
def create_folder(
    payload: InventoryFolderIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(_writer),
) -> InventoryFolderOut:
    folder = inventory_service.create_folder(db, user.organization_id, payload.name)
    return InventoryFolderOut.model_validate(folder)


@router.post("/picking-waves", response_model=PickingWaveOut)
def create_picking_wave(
    payload: list[PickLineIn],
    db: Session = Depends(get_db),
    user: UserContext = Depends(_writer),
) -> PickingWaveOut:
    try:
        return build_picking_wave(db, user.organization_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("", response_model=list[InventoryItemOut])
def list_items(
    response: Response,
    folder_id: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Match on name or SKU"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> list[InventoryItemOut]:
    query = db.query(InventoryItem).filter(InventoryItem.organization_id == user.organization_id)
    if folder_id:
        query = query.filter(InventoryItem.folder_id == folder_id)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(InventoryItem.name.ilike(like) | InventoryItem.sku.ilike(like))
    query = query.order_by(InventoryItem.name.asc(), InventoryItem.id.asc())
    rows = paginate(query, page=page, page_size=page_size, response=response)
    return [InventoryItemOut.model_validate(r) for r in rows]


@router.get("/{item_id}", response_model=InventoryItemOut)
def get_item(
    item_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> InventoryItemOut:
    return InventoryItemOut.model_validate(_load_item(db, user, item_id))


@router.post("", response_model=InventoryWriteOut, status_code=201)
def create_item(
    payload: InventoryItemCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(_writer),
) -> InventoryWriteOut:
    try:
        item, outcomes = inventory_service.create_item(db, user.organization_id, payload)
    except DuplicateSkuError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return InventoryWriteOut(item=InventoryItemOut.model_validate(item), automation=outcomes)


@router.patch("/{item_id}", response_model=InventoryWriteOut)
def update_item(
    item_id: str,
    payload: InventoryItemUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(_writer),
) -> InventoryWriteOut:
    item = _load_item(db, user, item_id)
    try:
        item, outcomes = inventory_service.update_item(db, item, payload)
    except DuplicateSkuError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return InventoryWriteOut(item=InventoryItemOut.model_validate(item), automation=outcomes)


@router.delete("/{item_id}", response_model=InventoryWriteOut)
def delete_item(
    item_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(_writer),
) -> InventoryWriteOut:
    item = _load_item(db, user, item_id)
    outcomes = inventory_service.delete_item(db, item)
    return InventoryWriteOut(item=None, automation=outcomes)
