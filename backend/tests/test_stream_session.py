from __future__ import annotations

import asyncio
import json
import logging

import pytest

from app.monitoring.metrics import realtime_connections
from workhub.realtime import EventBus, StreamSession


async def _next_block(session: StreamSession, iterator=None, timeout: float = 1.0) -> bytes:
    iterator = iterator or session.__aiter__()
    return await asyncio.wait_for(iterator.__anext__(), timeout=timeout)


@pytest.fixture(autouse=True)
def reset_connection_gauge() -> None:
    realtime_connections.clear()
    yield
    realtime_connections.clear()


@pytest.mark.anyio("asyncio")
async def test_open_registers_listener_and_close_removes_it(bus: EventBus):
    session = StreamSession(bus, 11, heartbeat_interval=0)
    await session.open()

    assert bus.listener_count(11) == 1
    assert session.listener_id is not None
    assert realtime_connections.value("chat_stream") == 1

    session.close()

    assert session.closed is True
    assert 11 not in bus
    assert realtime_connections.value("chat_stream") == 0


@pytest.mark.anyio("asyncio")
async def test_close_twice_is_safe(bus: EventBus):
    session = StreamSession(bus, 11, heartbeat_interval=0)
    await session.open()

    session.close()
    session.close()

    assert 11 not in bus
    assert realtime_connections.value("chat_stream") == 0


@pytest.mark.anyio("asyncio")
async def test_close_after_registry_entry_already_removed(bus: EventBus):
    session = StreamSession(bus, 12, heartbeat_interval=0)
    await session.open()
    listener = next(iter(bus._channels[12]))
    bus.unsubscribe(listener)

    session.close()

    assert session.closed is True
    assert 12 not in bus


@pytest.mark.anyio("asyncio")
async def test_published_events_are_yielded_in_order(bus: EventBus):
    async with StreamSession(bus, 3, heartbeat_interval=0) as session:
        iterator = session.__aiter__()
        bus.publish(3, {"type": "message", "id": 1})
        bus.publish(3, {"type": "message_updated", "id": 1})

        first = await _next_block(session, iterator)
        second = await _next_block(session, iterator)

    assert first.startswith(b"event: message\ndata: ")
    assert json.loads(first.decode().split("\n")[1][len("data: "):])["type"] == "message"
    assert json.loads(second.decode().split("\n")[1][len("data: "):])["type"] == "message_updated"
    assert 3 not in bus


@pytest.mark.anyio("asyncio")
async def test_heartbeat_pushes_ping_through_same_sink(bus: EventBus):
    async with StreamSession(bus, 4, heartbeat_interval=0.01) as session:
        block = await _next_block(session)

    assert block.startswith(b"event: ping\ndata: ")
    assert block.endswith(b"\n\n")
    assert block.split(b"\n")[1][len(b"data: "):].isdigit()


@pytest.mark.anyio("asyncio")
async def test_close_cancels_heartbeat(bus: EventBus):
    session = StreamSession(bus, 5, heartbeat_interval=0.01)
    await session.open()
    heartbeat = session._heartbeat

    session.close()
    await asyncio.sleep(0.05)

    assert heartbeat is not None and heartbeat.done()


@pytest.mark.anyio("asyncio")
async def test_iteration_ends_when_sink_is_closed(bus: EventBus):
    session = StreamSession(bus, 6, heartbeat_interval=0)
    await session.open()
    iterator = session.__aiter__()

    session.close()

    with pytest.raises(StopAsyncIteration):
        await _next_block(session, iterator)


@pytest.mark.anyio("asyncio")
async def test_shutdown_ends_open_sessions(bus: EventBus):
    session = StreamSession(bus, 9, heartbeat_interval=0)
    await session.open()
    iterator = session.__aiter__()

    bus.close_all()

    with pytest.raises(StopAsyncIteration):
        await _next_block(session, iterator)
    session.close()
    assert session.closed
    assert realtime_connections.value("chat_stream") == 0


@pytest.mark.anyio("asyncio")
async def test_cleanup_failure_does_not_skip_remaining_steps(bus: EventBus, caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("workhub.realtime"), "propagate", True)
    session = StreamSession(bus, 7, heartbeat_interval=10)
    await session.open()
    heartbeat = session._heartbeat

    def broken_close() -> None:
        raise OSError("transport already gone")

    session._sink.close = broken_close  # type: ignore[method-assign]

    with caplog.at_level(logging.WARNING, logger="workhub.realtime.session"):
        session.close()
    await asyncio.sleep(0.01)

    assert heartbeat.cancelled() or heartbeat.done()
    assert 7 not in bus
    assert any("cleanup step 'sink' failed" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio("asyncio")
async def test_overflowing_session_is_disconnected(bus: EventBus):
    session = StreamSession(bus, 8, heartbeat_interval=0, queue_size=1)
    await session.open()
    iterator = session.__aiter__()

    bus.publish(8, {"type": "message", "id": 1})
    bus.publish(8, {"type": "message", "id": 2})

    assert 8 not in bus
    with pytest.raises(StopAsyncIteration):
        await _next_block(session, iterator)
    session.close()
