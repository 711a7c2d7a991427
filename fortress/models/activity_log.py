"""
Append-only tenant activity log.

Automation notifications, discrepancy reports and user-submitted
activity all land here.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    organization_id: Mapped[str] = mapped_column(String(36), ForeignKey("organizations.id"))
    activity_type: Mapped[str] = mapped_column(String(128))
    description: Mapped[str] = mapped_column(Text)
    details: Mapped[dict] = mapped_column(JSON, default=dict)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_activity_logs_org_timestamp", "organization_id", "timestamp"),
    )
