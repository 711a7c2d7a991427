"""
Pydantic schemas for the tenant activity log.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActivityLogIn(BaseModel):
    activity_type: str = Field(..., min_length=1, max_length=128)
    description: str = Field(..., min_length=1)
    details: Optional[dict[str, Any]] = None


class ActivityLogOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    organization_id: str
    activity_type: str
    description: str
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
