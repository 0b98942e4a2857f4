"""Schemas related to chat messages and reactions."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class MessageCreate(BaseModel):
    """Payload for posting a message to a channel."""

    model_config = ConfigDict(populate_by_name=True)

    channel_id: int = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("channel_id", "channelId"),
        description="Target channel identifier",
    )
    body: str = Field(
        ...,
        validation_alias=AliasChoices("body", "text"),
        description="Message text",
    )

    @field_validator("body")
    @classmethod
    def _strip_body(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message body must not be empty")
        return value


class MessageUpdate(BaseModel):
    """Payload for editing an existing message."""

    model_config = ConfigDict(populate_by_name=True)

    body: str = Field(..., validation_alias=AliasChoices("body", "text"))

    @field_validator("body")
    @classmethod
    def _strip_body(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message body must not be empty")
        return value


class MessageRead(BaseModel):
    """Serialized representation of a chat message."""

    id: int
    channel_id: int
    from_user_id: int
    from_name: str
    body: str
    created_at: datetime
    updated_at: datetime | None = None


class MessageHistory(BaseModel):
    items: list[MessageRead]


class ReactionRequest(BaseModel):
    """Payload for adding a reaction."""

    emoji: str = Field(..., min_length=1, max_length=16)


class ReactionSummary(BaseModel):
    """Aggregated reaction information for a message."""

    emoji: str
    count: int = Field(..., ge=0, description="Total reactions with the emoji")
    user_names: list[str] = Field(
        default_factory=list,
        description="Names of users who added this reaction",
    )
    user_reacted: bool = Field(
        default=False,
        description="Indicates whether the current user added this reaction",
    )


class ReactionList(BaseModel):
    reactions: list[ReactionSummary]


class ReactionChange(BaseModel):
    """Outcome of adding or removing a reaction."""

    ok: bool = True
    emoji: str
    count: int = Field(..., ge=0)


class MessageDeleted(BaseModel):
    ok: bool = True
    id: int
