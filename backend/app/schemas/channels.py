"""Schemas for chat channels."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.models.enums import ChannelType


class ChannelRead(BaseModel):
    """Channel visible to the current user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    type: ChannelType
    name: str
    ref_id: int | None = None


class ChannelList(BaseModel):
    items: list[ChannelRead]


class DirectChannelRequest(BaseModel):
    """Payload for opening a direct conversation with another user."""

    user_id: int = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("user_id", "userId"),
        description="Identifier of the other participant",
    )


class DirectChannelRead(BaseModel):
    channel: ChannelRead
