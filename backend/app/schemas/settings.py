"""Schemas for chat moderation settings."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ChatSettingRead(BaseModel):
    value: bool
    description: str | None = None
    updated_at: datetime | None = None


class ChatSettingsRead(BaseModel):
    settings: dict[str, ChatSettingRead]


class ChatSettingsUpdate(BaseModel):
    """Partial update of moderation settings keyed by setting name."""

    settings: dict[str, bool] = Field(..., description="Setting name to new value")
