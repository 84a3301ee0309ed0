"""Pydantic schemas for notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class NotificationCreate(BaseModel):
    """Schema for creating a notification."""

    user_id: str
    title: str
    message: str
    type: str = "info"
    category: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class NotificationRead(BaseModel):
    """Schema for reading a notification."""

    id: str
    user_id: str
    title: str
    message: str
    type: str = "info"
    category: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None
