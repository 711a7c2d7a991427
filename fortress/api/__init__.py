"""
API package for the Fortress backend.

This package aggregates all API routers to be included in the FastAPI
application. The API is versioned under ``/api/v1``.
"""

from fastapi import APIRouter, Depends
from .v1.activity_logs import router as activity_logs_router
from .v1.auth import router as auth_router
from .v1.automation import router as automation_router
from .v1.automation_rules import router as automation_rules_router
from .v1.health import router as health_router
from .v1.inventory import router as inventory_router
from .v1.stock_discrepancies import router as stock_discrepancies_router
from ..core.auth import get_current_user
from ..core.rate_limit import rate_limit_dependency

api_router = APIRouter()
protected = [Depends(get_current_user), Depends(rate_limit_dependency)]
api_router.include_router(auth_router, dependencies=[Depends(rate_limit_dependency)])
api_router.include_router(health_router)
api_router.include_router(automation_router, dependencies=protected)
api_router.include_router(automation_rules_router, dependencies=protected)
api_router.include_router(inventory_router, dependencies=protected)
api_router.include_router(stock_discrepancies_router, dependencies=protected)
api_router.include_router(activity_logs_router, dependencies=protected)
