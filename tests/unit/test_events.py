from __future__ import annotations

import pytest

from tutorlink_sync.client.events import EventBus
from tutorlink_sync.client.protocol import PresenceEvent, TypingEvent


@pytest.mark.asyncio
async def test_handlers_receive_only_their_event_type():
    bus = EventBus()
    presence: list[PresenceEvent] = []
    typing: list[TypingEvent] = []
    bus.subscribe(PresenceEvent, presence.append)
    bus.subscribe(TypingEvent, typing.append)

    await bus.publish(PresenceEvent(user_id="u2", online=True))

    assert len(presence) == 1
    assert typing == []


@pytest.mark.asyncio
async def test_async_handlers_are_awaited_and_failures_isolated():
    bus = EventBus()
    seen: list[str] = []

    async def failing(event):
        raise RuntimeError("boom")

    async def ok(event):
        seen.append(event.user_id)

    bus.subscribe(PresenceEvent, failing)
    bus.subscribe(PresenceEvent, ok)

    await bus.publish(PresenceEvent(user_id="u2", online=False))

    assert seen == ["u2"]


@pytest.mark.asyncio
async def test_cancelled_subscription_stops_delivery():
    bus = EventBus()
    seen: list[object] = []
    sub = bus.subscribe(PresenceEvent, seen.append)

    sub.cancel()
    sub.cancel()
    await bus.publish(PresenceEvent(user_id="u2", online=True))

    assert seen == []
    assert bus.handler_count() == 0
