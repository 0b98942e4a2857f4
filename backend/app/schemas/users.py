"""Schemas for the chat user directory."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ChatUserRead(BaseModel):
    """User entry offered when starting a direct conversation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class ChatUserList(BaseModel):
    items: list[ChatUserRead]
