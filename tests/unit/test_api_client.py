from __future__ import annotations

import json

import httpx
import pytest

from tutorlink_sync.application.exceptions import NetworkError
from tutorlink_sync.client.api import AuthApi, MessagingApi
from tutorlink_sync.client.gateway import RequestGateway
from tests.conftest import FakeSleep, RecordingNavigator

BASE = "http://api.test/api/v1"


@pytest.fixture
def gateway_for(session, clock):
    def _make(handler) -> RequestGateway:
        return RequestGateway(
            session,
            base_url=BASE,
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            clock=clock,
            sleep=FakeSleep(clock),
            navigator=RecordingNavigator(),
        )

    return _make


def _replying(payload, seen: list[httpx.Request] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json=payload)

    return handler


@pytest.mark.asyncio
async def test_login_returns_user_and_token(gateway_for):
    api = AuthApi(gateway_for(_replying({"user": {"id": 7, "name": "Ada"}, "token": "t-7"})))

    user, token = await api.login("ada@example.com", "pw")

    assert user == {"id": 7, "name": "Ada"}
    assert token == "t-7"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        {"token": "t-7"},
        {"user": {"id": 7}},
        {"user": {"name": "Ada"}, "token": "t-7"},
        {"user": "ada", "token": "t-7"},
        {"user": {"id": 7}, "token": ""},
    ],
)
async def test_login_rejects_malformed_response(gateway_for, payload):
    api = AuthApi(gateway_for(_replying(payload)))

    with pytest.raises(NetworkError):
        await api.login("ada@example.com", "pw")


@pytest.mark.asyncio
async def test_send_message_posts_to_the_conversation(gateway_for):
    seen: list[httpx.Request] = []
    reply = {"id": 31, "conversationId": 5, "senderId": 1, "body": "hi", "sentAt": "2024-05-01T17:00:00Z"}
    api = MessagingApi(gateway_for(_replying(reply, seen)))

    message = await api.send_message("5", "hi")

    assert message.id == "31"
    assert message.conversation_id == "5"
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/v1/messages/conversations/5/messages"
    assert json.loads(seen[0].content) == {"body": "hi"}


@pytest.mark.asyncio
async def test_create_conversation_reads_either_id_field(gateway_for):
    assert await MessagingApi(gateway_for(_replying({"conversationId": 12}))).create_conversation("u9") == "12"
    assert await MessagingApi(gateway_for(_replying({"id": "c-3"}))).create_conversation("u9") == "c-3"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [["c-3"], "c-3", {"title": "no id"}])
async def test_create_conversation_rejects_malformed_response(gateway_for, payload):
    api = MessagingApi(gateway_for(_replying(payload)))

    with pytest.raises(NetworkError):
        await api.create_conversation("u9")
