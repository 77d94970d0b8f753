from __future__ import annotations

import httpx
import pytest

from tutorlink_sync.client.session import SessionStore
from tutorlink_sync.client.sync import SyncClient
from tests.conftest import FakeSocket, RecordingNavigator

BASE = "http://api.test/api/v1"


def _client(session: SessionStore, sockets: list[FakeSocket], handler=None) -> SyncClient:
    def factory() -> FakeSocket:
        sock = FakeSocket()
        sockets.append(sock)
        return sock

    handler = handler or (lambda request: httpx.Response(200, json=[]))
    return SyncClient(
        session=session,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        base_url=BASE,
        socket_url="http://api.test",
        socket_factory=factory,
        navigator=RecordingNavigator(),
    )


@pytest.mark.asyncio
async def test_socket_events_reach_trackers_and_caches(session):
    sockets: list[FakeSocket] = []
    client = _client(session, sockets)

    assert await client.start() is True
    sock = sockets[0]
    await sock.fire("presence", {"userId": "u2", "online": True})
    await sock.fire("typing", {"conversationId": "c1", "userId": "u2", "isTyping": True})
    await sock.fire("newMessage", {
        "id": "m1", "conversationId": "c1", "senderId": "u2", "body": "hi",
        "sentAt": "2024-05-01T17:00:00Z",
    })
    await sock.fire("newNotification", {"notification": {"id": "n1", "userId": "u1", "type": "message"}})

    assert client.presence.is_online("u2")
    assert client.typing.typing_in("c1") == frozenset({"u2"})
    assert [m.id for m in client.cache.messages("c1")] == ["m1"]
    assert client.notifications.unread_count() == 1


@pytest.mark.asyncio
async def test_login_starts_session_and_socket():
    sockets: list[FakeSocket] = []
    session = SessionStore()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/auth/login"
        return httpx.Response(200, json={"user": {"id": 7, "name": "Ada"}, "token": "jwt-7"})

    client = _client(session, sockets, handler)
    user = await client.login("ada@example.com", "pw")

    assert user.user_id == "7"
    assert session.token == "jwt-7"
    assert sockets[0].connect_calls[0]["auth"] == {"token": "jwt-7"}


@pytest.mark.asyncio
async def test_session_expiry_tears_down_realtime_state(session):
    sockets: list[FakeSocket] = []
    client = _client(session, sockets)
    await client.start()
    await sockets[0].fire("presence", {"userId": "u2", "online": True})

    session.expire()
    await client._teardown_task

    assert client.started is False
    assert sockets[0].disconnects == 1
    assert client.presence.snapshot() == {}
    assert client.bus.handler_count() == 0


@pytest.mark.asyncio
async def test_open_conversation_switches_rooms(session):
    sockets: list[FakeSocket] = []
    client = _client(session, sockets)
    await client.start()

    await client.open_conversation("c1")
    await client.open_conversation("c2")

    assert sockets[0].emitted == [
        ("joinConversation", {"conversationId": "c1"}),
        ("leaveConversation", {"conversationId": "c1"}),
        ("joinConversation", {"conversationId": "c2"}),
    ]


@pytest.mark.asyncio
async def test_logout_clears_everything(session):
    sockets: list[FakeSocket] = []
    client = _client(session, sockets)
    await client.start()

    await client.logout()
    await client.aclose()

    assert session.user is None
    assert client.channel.active is False
    assert client.cache.conversations_loaded is False
