"""HTTP endpoints for chat messages and their reactions."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_event_bus, parse_positive_id
from app.database import get_db
from app.models import ChatMessage, User
from app.schemas import (
    MessageCreate,
    MessageDeleted,
    MessageHistory,
    MessageRead,
    MessageUpdate,
    ReactionChange,
    ReactionList,
    ReactionRequest,
    ReactionSummary,
)
from app.services import chat_messages
from workhub.realtime import EventBus

router = APIRouter(prefix="/messages", tags=["messages"])


def _utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def serialize_message(message: ChatMessage) -> MessageRead:
    return MessageRead(
        id=message.id,
        channel_id=message.channel_id,
        from_user_id=message.author_id,
        from_name=message.author.name,
        body=message.body,
        created_at=_utc(message.created_at),
        updated_at=_utc(message.updated_at),
    )


@router.get("", response_model=MessageHistory)
def list_messages(
    channel_id: str | None = Query(default=None, alias="channelId"),
    since: str | None = Query(default=None, description="Message id or ISO-8601 timestamp"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageHistory:
    """Return channel history so reconnecting clients can catch up."""

    messages = chat_messages.list_messages(
        db,
        parse_positive_id(channel_id, "channelId"),
        current_user,
        current_user.is_privileged,
        since=since,
    )
    return MessageHistory(items=[serialize_message(message) for message in messages])


@router.post("", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def create_message(
    payload: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> MessageRead:
    message = chat_messages.create_message(
        db,
        bus,
        payload.channel_id,
        current_user,
        payload.body,
        current_user.is_privileged,
    )
    return serialize_message(message)


@router.put("/{message_id}", response_model=MessageRead)
async def update_message(
    message_id: int,
    payload: MessageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> MessageRead:
    message = chat_messages.edit_message(
        db,
        bus,
        message_id,
        payload.body,
        current_user,
        current_user.is_privileged,
    )
    return serialize_message(message)


@router.delete("/{message_id}", response_model=MessageDeleted)
async def delete_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> MessageDeleted:
    message = chat_messages.delete_message(
        db, bus, message_id, current_user, current_user.is_privileged
    )
    return MessageDeleted(id=message.id)


@router.get("/{message_id}/reactions", response_model=ReactionList)
def read_reactions(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReactionList:
    aggregates = chat_messages.list_reactions(
        db, message_id, current_user, current_user.is_privileged
    )
    return ReactionList(
        reactions=[
            ReactionSummary(
                emoji=item.emoji,
                count=item.count,
                user_names=item.user_names,
                user_reacted=item.user_reacted,
            )
            for item in aggregates
        ]
    )


@router.post(
    "/{message_id}/reactions",
    response_model=ReactionChange,
    status_code=status.HTTP_201_CREATED,
)
async def add_reaction(
    message_id: int,
    payload: ReactionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> ReactionChange:
    count = chat_messages.add_reaction(
        db, bus, message_id, current_user, payload.emoji, current_user.is_privileged
    )
    return ReactionChange(emoji=payload.emoji, count=count)


@router.delete("/{message_id}/reactions", response_model=ReactionChange)
async def remove_reaction(
    message_id: int,
    emoji: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> ReactionChange:
    count = chat_messages.remove_reaction(
        db, bus, message_id, current_user, emoji, current_user.is_privileged
    )
    return ReactionChange(emoji=emoji, count=count)
