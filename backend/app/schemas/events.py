"""Payloads fanned out to chat stream subscribers.

Every payload is sent as an SSE block named ``message``; clients dispatch on
the ``type`` field.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class ChatEvent(BaseModel):
    type: str
    channel_id: int

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")


class MessagePosted(ChatEvent):
    type: Literal["message"] = "message"
    id: int
    from_user_id: int
    from_name: str
    body: str
    created_at: datetime


class MessageUpdated(ChatEvent):
    type: Literal["message_updated"] = "message_updated"
    id: int
    body: str
    updated_at: datetime


class MessageRemoved(ChatEvent):
    type: Literal["message_deleted"] = "message_deleted"
    id: int


class ReactionAdded(ChatEvent):
    type: Literal["reaction_added"] = "reaction_added"
    message_id: int
    user_id: int
    emoji: str
    count: int


class ReactionRemoved(ChatEvent):
    type: Literal["reaction_removed"] = "reaction_removed"
    message_id: int
    user_id: int
    emoji: str
    count: int
