"""Stream endpoint behaviour, end to end through the bus."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.responses import StreamingResponse
from starlette.requests import ClientDisconnect

from app.api.stream import open_stream
from app.services import chat_messages
from app.services.errors import Forbidden, InvalidInput


async def _next_block(response: StreamingResponse, timeout: float = 1.0) -> bytes:
    chunk = await asyncio.wait_for(response.body_iterator.__anext__(), timeout=timeout)
    return chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")


@pytest.mark.anyio("asyncio")
async def test_stream_receives_message_posted_by_another_member(
    session_factory, db_session, bus, department_channel, member, colleague
):
    stream_db = session_factory()
    response = await open_stream(
        channel_id=str(department_channel.id),
        db=stream_db,
        current_user=member,
        bus=bus,
    )
    try:
        assert bus.listener_count(department_channel.id) == 1

        message = chat_messages.create_message(
            db_session, bus, department_channel.id, colleague, "standup in 5", False
        )
        block = await _next_block(response)
    finally:
        await response.body_iterator.aclose()

    header, data_line, blank, tail = block.decode("utf-8").split("\n")
    assert header == "event: message"
    assert (blank, tail) == ("", "")
    payload = json.loads(data_line[len("data: "):])
    assert payload["type"] == "message"
    assert payload["id"] == message.id
    assert payload["body"] == "standup in 5"
    assert department_channel.id not in bus


@pytest.mark.anyio("asyncio")
async def test_stream_response_carries_sse_headers(session_factory, bus, department_channel, member):
    response = await open_stream(
        channel_id=str(department_channel.id),
        db=session_factory(),
        current_user=member,
        bus=bus,
    )
    try:
        assert response.headers["content-type"] == "text/event-stream; charset=utf-8"
        assert response.headers["cache-control"] == "no-cache, no-transform"
        assert response.headers["connection"] == "keep-alive"
        bus.publish(department_channel.id, {"type": "message", "id": 1})
        assert (await _next_block(response)).startswith(b"event: message\n")
    finally:
        await response.body_iterator.aclose()

    assert department_channel.id not in bus


@pytest.mark.anyio("asyncio")
async def test_disconnect_before_headers_releases_listener(session_factory, bus, department_channel, member):
    response = await open_stream(
        channel_id=str(department_channel.id),
        db=session_factory(),
        current_user=member,
        bus=bus,
    )
    assert bus.listener_count(department_channel.id) == 1
    sent: list[str] = []

    async def receive() -> dict:
        await asyncio.sleep(10)
        return {"type": "http.disconnect"}

    async def send(message: dict) -> None:
        sent.append(message["type"])
        if message["type"] == "http.response.start":
            raise OSError("connection reset by peer")

    scope = {"type": "http", "asgi": {"version": "3.0", "spec_version": "2.4"}}
    with pytest.raises((OSError, ClientDisconnect, ExceptionGroup)):
        await response(scope, receive, send)

    assert sent == ["http.response.start"]
    assert response.session.closed
    assert bus.channel_ids() == []
    heartbeats = [
        task for task in asyncio.all_tasks() if task.get_name().startswith("chat-stream-heartbeat")
    ]
    await asyncio.sleep(0)
    assert all(task.done() for task in heartbeats)


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize("raw", [None, "", "abc", "0", "-5"])
async def test_stream_rejects_invalid_channel_id(session_factory, bus, member, raw):
    with pytest.raises(InvalidInput):
        await open_stream(channel_id=raw, db=session_factory(), current_user=member, bus=bus)

    assert bus.channel_ids() == []


@pytest.mark.anyio("asyncio")
async def test_stream_rejects_unauthorized_reader(session_factory, bus, department_channel, outsider):
    with pytest.raises(Forbidden):
        await open_stream(
            channel_id=str(department_channel.id),
            db=session_factory(),
            current_user=outsider,
            bus=bus,
        )

    assert bus.channel_ids() == []


def test_stream_http_errors(client, auth_headers, department_channel, member, outsider):
    assert client.get(f"/api/chat/stream?channelId={department_channel.id}").status_code == 401
    assert client.get("/api/chat/stream", headers=auth_headers(member)).status_code == 400
    assert (
        client.get("/api/chat/stream?channelId=abc", headers=auth_headers(member)).status_code == 400
    )
    assert (
        client.get(
            f"/api/chat/stream?channelId={department_channel.id}", headers=auth_headers(outsider)
        ).status_code
        == 403
    )
