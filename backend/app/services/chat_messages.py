"""Message and reaction lifecycle operations.

Every mutation commits first and then publishes a notification on the event
bus. Publishing is best-effort: subscribers that miss an event reconcile by
fetching history after they reconnect.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models import ChatMessage, MessageReaction, User
from app.monitoring.metrics import chat_publish_errors_total
from app.schemas.events import (
    ChatEvent,
    MessagePosted,
    MessageRemoved,
    MessageUpdated,
    ReactionAdded,
    ReactionRemoved,
)
from app.services.channel_access import can_read_channel, can_write_channel
from app.services.chat_settings import is_message_deletion_allowed
from app.services.errors import Conflict, Forbidden, InvalidInput, NotFound
from workhub.realtime import EventBus

logger = logging.getLogger(__name__)

ALLOWED_EMOJIS: tuple[str, ...] = (
    "👍", "👎", "❤️", "😂", "😮", "😢", "😡", "🎉", "👏", "🔥",
    "✅", "❌", "⭐", "💡", "🤔", "👀", "💪", "🙏", "😊", "😕",
)


@dataclass(slots=True)
class ReactionAggregate:
    emoji: str
    count: int = 0
    user_names: list[str] = field(default_factory=list)
    user_reacted: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _notify(bus: EventBus, event: ChatEvent) -> None:
    try:
        bus.publish(event.channel_id, event.to_payload())
    except Exception:
        chat_publish_errors_total.labels(event.type).inc()
        logger.exception(
            "Failed to publish %s event on channel %s", event.type, event.channel_id
        )


def _clean_body(body: str | None) -> str:
    text = (body or "").strip()
    if not text:
        raise InvalidInput("Message body must not be empty")
    limit = get_settings().chat_message_max_length
    if len(text) > limit:
        raise InvalidInput(f"Message body exceeds {limit} characters")
    return text


def _validate_emoji(emoji: str | None) -> str:
    if not emoji or emoji not in ALLOWED_EMOJIS:
        raise InvalidInput("Emoji is not allowed")
    return emoji


def _get_live_message(db: Session, message_id: int) -> ChatMessage:
    message = db.get(ChatMessage, message_id) if message_id > 0 else None
    if message is None or message.is_deleted:
        raise NotFound("Message not found")
    return message


def within_edit_window(message: ChatMessage, now: datetime | None = None) -> bool:
    """Return whether the author may still edit ``message`` without privileges."""

    window = timedelta(minutes=get_settings().chat_edit_window_minutes)
    current = now or _utcnow()
    return current - _as_utc(message.created_at) <= window


def _can_modify(message: ChatMessage, actor_id: int, is_privileged: bool) -> bool:
    if is_privileged:
        return True
    return message.author_id == actor_id and within_edit_window(message)


def create_message(
    db: Session,
    bus: EventBus,
    channel_id: int,
    author: User,
    body: str,
    is_privileged: bool,
) -> ChatMessage:
    """Persist a new message and announce it to the channel's listeners."""

    text = _clean_body(body)
    if channel_id <= 0:
        raise InvalidInput("channel_id is required")
    if not can_write_channel(db, author.id, channel_id, is_privileged):
        raise Forbidden("You cannot write to this channel")

    message = ChatMessage(channel_id=channel_id, author_id=author.id, body=text)
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.debug("Message %s posted in channel %s by user %s", message.id, channel_id, author.id)

    _notify(
        bus,
        MessagePosted(
            id=message.id,
            channel_id=channel_id,
            from_user_id=author.id,
            from_name=author.name,
            body=message.body,
            created_at=_as_utc(message.created_at),
        ),
    )
    return message


def edit_message(
    db: Session,
    bus: EventBus,
    message_id: int,
    body: str,
    actor: User,
    is_privileged: bool,
) -> ChatMessage:
    """Replace the body of a message and announce the change."""

    text = _clean_body(body)
    message = _get_live_message(db, message_id)
    if not _can_modify(message, actor.id, is_privileged):
        raise Forbidden("Message can no longer be edited or is not yours")
    if not is_privileged and not can_write_channel(db, actor.id, message.channel_id, False):
        raise Forbidden("You cannot write to this channel")

    message.body = text
    message.updated_at = _utcnow()
    db.commit()
    db.refresh(message)

    _notify(
        bus,
        MessageUpdated(
            id=message.id,
            channel_id=message.channel_id,
            body=message.body,
            updated_at=_as_utc(message.updated_at),
        ),
    )
    return message


def delete_message(
    db: Session,
    bus: EventBus,
    message_id: int,
    actor: User,
    is_privileged: bool,
) -> ChatMessage:
    """Soft-delete a message.

    Ownership is always required for non-privileged actors. Past the edit
    window an author may still delete their own message when the
    ``allow_message_deletion`` setting is enabled.
    """

    message = _get_live_message(db, message_id)
    if message.author_id != actor.id and not is_privileged:
        raise Forbidden("You can only delete your own messages")
    if not _can_modify(message, actor.id, is_privileged) and not is_message_deletion_allowed(db):
        raise Forbidden("Deletion window has passed and late deletion is disabled")
    if not is_privileged and not can_write_channel(db, actor.id, message.channel_id, False):
        raise Forbidden("You cannot write to this channel")

    message.deleted_at = _utcnow()
    db.commit()
    logger.info("Message %s deleted by user %s", message.id, actor.id)

    _notify(bus, MessageRemoved(id=message.id, channel_id=message.channel_id))
    return message


def _reaction_count(db: Session, message_id: int, emoji: str) -> int:
    stmt = select(func.count(MessageReaction.id)).where(
        MessageReaction.message_id == message_id,
        MessageReaction.emoji == emoji,
    )
    return int(db.execute(stmt).scalar_one())


def add_reaction(
    db: Session,
    bus: EventBus,
    message_id: int,
    user: User,
    emoji: str,
    is_privileged: bool,
) -> int:
    """Add ``emoji`` from ``user`` to a message and return the new count."""

    emoji = _validate_emoji(emoji)
    message = _get_live_message(db, message_id)
    if not can_write_channel(db, user.id, message.channel_id, is_privileged):
        raise Forbidden("You cannot react in this channel")

    existing = db.execute(
        select(MessageReaction.id).where(
            MessageReaction.message_id == message.id,
            MessageReaction.user_id == user.id,
            MessageReaction.emoji == emoji,
        )
    ).first()
    if existing is not None:
        raise Conflict("Reaction already added")

    db.add(MessageReaction(message_id=message.id, user_id=user.id, emoji=emoji))
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Reaction already added") from exc

    count = _reaction_count(db, message.id, emoji)
    _notify(
        bus,
        ReactionAdded(
            channel_id=message.channel_id,
            message_id=message.id,
            user_id=user.id,
            emoji=emoji,
            count=count,
        ),
    )
    return count


def remove_reaction(
    db: Session,
    bus: EventBus,
    message_id: int,
    user: User,
    emoji: str,
    is_privileged: bool,
) -> int:
    """Remove ``emoji`` from ``user`` on a message and return the remaining count."""

    emoji = _validate_emoji(emoji)
    message = _get_live_message(db, message_id)
    if not can_write_channel(db, user.id, message.channel_id, is_privileged):
        raise Forbidden("You cannot react in this channel")

    reaction = db.execute(
        select(MessageReaction).where(
            MessageReaction.message_id == message.id,
            MessageReaction.user_id == user.id,
            MessageReaction.emoji == emoji,
        )
    ).scalar_one_or_none()
    if reaction is None:
        raise NotFound("Reaction not found")

    db.delete(reaction)
    db.commit()

    count = _reaction_count(db, message.id, emoji)
    _notify(
        bus,
        ReactionRemoved(
            channel_id=message.channel_id,
            message_id=message.id,
            user_id=user.id,
            emoji=emoji,
            count=count,
        ),
    )
    return count


def list_reactions(
    db: Session,
    message_id: int,
    user: User,
    is_privileged: bool,
) -> list[ReactionAggregate]:
    """Aggregate reactions per emoji, most popular first."""

    message = _get_live_message(db, message_id)
    if not can_read_channel(db, user.id, message.channel_id, is_privileged):
        raise Forbidden("You cannot read this channel")

    rows = db.execute(
        select(MessageReaction.emoji, MessageReaction.user_id, User.name)
        .join(User, User.id == MessageReaction.user_id)
        .where(MessageReaction.message_id == message.id)
        .order_by(MessageReaction.created_at, MessageReaction.id)
    ).all()

    aggregates: "OrderedDict[str, ReactionAggregate]" = OrderedDict()
    for emoji, reactor_id, reactor_name in rows:
        aggregate = aggregates.setdefault(emoji, ReactionAggregate(emoji=emoji))
        aggregate.count += 1
        aggregate.user_names.append(reactor_name)
        if reactor_id == user.id:
            aggregate.user_reacted = True

    return sorted(aggregates.values(), key=lambda item: (-item.count, item.emoji))


def _parse_since(since: str) -> int | datetime | None:
    since = since.strip()
    if not since:
        return None
    if since.isascii() and since.isdigit():
        return int(since)
    try:
        parsed = datetime.fromisoformat(since.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _as_utc(parsed)


def list_messages(
    db: Session,
    channel_id: int,
    user: User,
    is_privileged: bool,
    since: str | None = None,
    limit: int | None = None,
) -> list[ChatMessage]:
    """Return live messages of a channel in chronological order.

    ``since`` is either a message id (exclusive) or an ISO-8601 timestamp;
    an unparseable value is ignored.
    """

    if channel_id <= 0:
        raise InvalidInput("channelId is required")
    if not can_read_channel(db, user.id, channel_id, is_privileged):
        raise Forbidden("You cannot read this channel")

    stmt = select(ChatMessage).where(
        ChatMessage.channel_id == channel_id,
        ChatMessage.deleted_at.is_(None),
    )
    cursor = _parse_since(since) if since else None
    if isinstance(cursor, int):
        stmt = stmt.where(ChatMessage.id > cursor)
    elif isinstance(cursor, datetime):
        stmt = stmt.where(ChatMessage.created_at > cursor)

    stmt = stmt.order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc()).limit(
        limit or get_settings().chat_history_limit
    )
    return list(db.execute(stmt).scalars())


__all__ = [
    "ALLOWED_EMOJIS",
    "ReactionAggregate",
    "within_edit_window",
    "create_message",
    "edit_message",
    "delete_message",
    "add_reaction",
    "remove_reaction",
    "list_reactions",
    "list_messages",
]
