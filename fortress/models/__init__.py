"""
SQLAlchemy model base class for the Fortress backend.

All ORM models inherit from the declarative `Base` defined here. Every
tenant-owned table carries an ``organization_id`` column.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


from .organization import Organization  # noqa: E402,F401
from .app_user import AppUser  # noqa: E402,F401
from .inventory import InventoryFolder, InventoryItem  # noqa: E402,F401
from .automation_rule import AutomationRule  # noqa: E402,F401
from .activity_log import ActivityLog  # noqa: E402,F401
from .discrepancy import Discrepancy  # noqa: E402,F401
from .purchase_order import PurchaseOrder  # noqa: E402,F401
from .notification_outbox import NotificationOutbox  # noqa: E402,F401

__all__ = [
    "Base",
    "utcnow",

    # Tenancy / users
    "Organization",
    "AppUser",

    # Inventory
    "InventoryFolder",
    "InventoryItem",
    "Discrepancy",
    "PurchaseOrder",

    # Automation
    "AutomationRule",
    "ActivityLog",
    "NotificationOutbox",
]
