"""Server-Sent Events endpoint streaming chat activity of one channel."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from starlette.types import Receive, Scope, Send

from app.api.deps import get_current_user, get_event_bus, parse_positive_id
from app.config import get_settings
from app.database import get_db
from app.models import User
from app.services.channel_access import can_read_channel
from app.services.errors import Forbidden
from workhub.realtime import SSE_HEADERS, SSE_MEDIA_TYPE, EventBus, StreamSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])

settings = get_settings()


async def _relay(session: StreamSession) -> AsyncIterator[bytes]:
    try:
        async for block in session:
            yield block
    finally:
        session.close()


class SessionStreamingResponse(StreamingResponse):
    """Stream the blocks of an already subscribed session.

    The session is closed when the response ends, including when sending the
    headers fails and the body iterator never starts.
    """

    def __init__(self, session: StreamSession) -> None:
        super().__init__(_relay(session), media_type=SSE_MEDIA_TYPE, headers=dict(SSE_HEADERS))
        self.session = session

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.session.close()


@router.get("/stream", response_class=StreamingResponse)
async def open_stream(
    channel_id: str | None = Query(default=None, alias="channelId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    bus: EventBus = Depends(get_event_bus),
) -> StreamingResponse:
    """Authorize the caller for the channel and stream its events until disconnect."""

    resolved_id = parse_positive_id(channel_id, "channelId")
    if not can_read_channel(db, current_user.id, resolved_id, current_user.is_privileged):
        raise Forbidden("You cannot read this channel")
    user_id = current_user.id
    # The stream can stay open for hours; release the connection now.
    db.close()

    session = StreamSession(
        bus,
        resolved_id,
        heartbeat_interval=settings.chat_stream_heartbeat_seconds,
        queue_size=settings.chat_stream_queue_size,
    )
    await session.open()
    logger.debug("User %s subscribed to channel %s", user_id, resolved_id)
    return SessionStreamingResponse(session)
