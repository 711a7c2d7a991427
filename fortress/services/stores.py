"""
Persistence collaborators for the automation engine.

The engine reads rules from a ``RuleStore`` and appends notifications to
an ``ActivityLogStore``. Both are passed in explicitly together with the
tenant id so the evaluator never depends on ambient session state; the
SQL implementations below are what the API wires in.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.activity_log import ActivityLog
from ..models.automation_rule import AutomationRule

logger = logging.getLogger("automation_store")


class RuleStoreError(RuntimeError):
    """Raised when the active rule set of a tenant cannot be read."""


class RuleStore(Protocol):
    def active_rules(self, organization_id: str) -> Sequence[AutomationRule]:
        ...


class ActivityLogStore(Protocol):
    def append(
        self,
        *,
        user_id: Optional[str],
        organization_id: str,
        activity_type: str,
        description: str,
        details: dict[str, Any],
    ) -> None:
        ...


class SqlRuleStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def active_rules(self, organization_id: str) -> list[AutomationRule]:
        try:
            return (
                self.db.query(AutomationRule)
                .filter(
                    AutomationRule.organization_id == organization_id,
                    AutomationRule.is_active.is_(True),
                )
                .order_by(AutomationRule.created_at.asc(), AutomationRule.id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            raise RuleStoreError("Failed to fetch automation rules.") from exc


class SqlActivityLogStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def append(
        self,
        *,
        user_id: Optional[str],
        organization_id: str,
        activity_type: str,
        description: str,
        details: dict[str, Any],
    ) -> ActivityLog:
        entry = ActivityLog(
            user_id=user_id,
            organization_id=organization_id,
            activity_type=activity_type,
            description=description,
            details=details,
        )
        self.db.add(entry)
        # Surface constraint errors inside the caller's savepoint.
        self.db.flush()
        return entry
