"""
ORM model for tenant automation rules.

Conditions and actions are stored as JSON and validated against the
typed shapes in ``fortress.schemas.automation_rule`` when a rule is saved.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class AutomationRule(Base):
    __tablename__ = "automation_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id: Mapped[str] = mapped_column(String(36), ForeignKey("organizations.id"))
    user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("app_users.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    trigger_type: Mapped[str] = mapped_column(String(64))
    condition_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    action_json: Mapped[dict] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_automation_rules_org_active", "organization_id", "is_active"),
    )
