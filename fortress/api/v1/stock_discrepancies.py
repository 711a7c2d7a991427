"""
API endpoints for cycle-count discrepancies.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ...core.auth import UserContext, require_tenant_user
from ...core.db import get_db
from ...core.pagination import paginate
from ...schemas.inventory import DiscrepancyOut, StockCountIn
from ...services.stock_discrepancy import discrepancy_query, handle_stock_discrepancy


router = APIRouter(prefix="/api/v1/stock-discrepancies", tags=["stock-discrepancies"])


@router.post("")
def report_stock_count(
    payload: StockCountIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> dict:
    try:
        result = handle_stock_discrepancy(db, user, payload)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if "discrepancy" in result:
        result["discrepancy"] = DiscrepancyOut.model_validate(result["discrepancy"]).model_dump(mode="json")
    result["automation"] = [outcome.model_dump() for outcome in result.get("automation", [])]
    return result


@router.get("", response_model=list[DiscrepancyOut])
def get_discrepancies(
    response: Response,
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_tenant_user),
) -> list[DiscrepancyOut]:
    query = discrepancy_query(db, user.organization_id, status=status)
    rows = paginate(query, page=page, page_size=page_size, response=response)
    return [DiscrepancyOut.model_validate(r) for r in rows]
