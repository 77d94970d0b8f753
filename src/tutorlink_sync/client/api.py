"""Typed wrappers over the REST endpoints the sync core consumes."""
from __future__ import annotations

from typing import Any, TypeVar

from pydantic import ValidationError

from tutorlink_sync.application.exceptions import NetworkError
from tutorlink_sync.client.gateway import RequestGateway
from tutorlink_sync.client.protocol import ConversationIn, MessageIn, NotificationIn, WireModel
from tutorlink_sync.domain.entities.conversation import Conversation
from tutorlink_sync.domain.entities.message import Message
from tutorlink_sync.domain.entities.notification import Notification

W = TypeVar("W", bound=WireModel)


def _as_list(data: Any) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise NetworkError("Expected a JSON array")
    return data


def _parse(model: type[W], data: Any) -> W:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise NetworkError(f"Unexpected {model.__name__} payload") from exc


class AuthApi:
    def __init__(self, gateway: RequestGateway) -> None:
        self._gateway = gateway

    async def login(self, email: str, password: str) -> tuple[dict[str, Any], str]:
        data = await self._gateway.send(
            "/auth/login",
            method="POST",
            body={"email": email, "password": password},
        )
        if not isinstance(data, dict):
            raise NetworkError("Unexpected login payload")
        user, token = data.get("user"), data.get("token")
        if not isinstance(user, dict) or user.get("id") is None or not isinstance(token, str) or not token:
            raise NetworkError("Login response is missing the user or token")
        return user, token


class MessagingApi:
    def __init__(self, gateway: RequestGateway) -> None:
        self._gateway = gateway

    async def list_conversations(self) -> list[Conversation]:
        data = await self._gateway.send("/messages/conversations")
        return [_parse(ConversationIn, c).to_entity() for c in _as_list(data)]

    async def list_messages(self, conversation_id: str) -> list[Message]:
        data = await self._gateway.send(f"/messages/conversations/{conversation_id}/messages")
        return [_parse(MessageIn, m).to_entity() for m in _as_list(data)]

    async def send_message(self, conversation_id: str, body: str) -> Message:
        data = await self._gateway.send(
            f"/messages/conversations/{conversation_id}/messages",
            method="POST",
            body={"body": body},
        )
        return _parse(MessageIn, data).to_entity()

    async def create_conversation(self, recipient_id: str, title: str | None = None) -> str:
        payload: dict[str, Any] = {"recipientId": recipient_id}
        if title:
            payload["title"] = title
        data = await self._gateway.send("/messages/conversations", method="POST", body=payload)
        if not isinstance(data, dict):
            raise NetworkError("Unexpected conversation payload")
        conversation_id = data.get("conversationId") or data.get("id")
        if not conversation_id:
            raise NetworkError("Conversation id missing from response")
        return str(conversation_id)


class NotificationsApi:
    def __init__(self, gateway: RequestGateway) -> None:
        self._gateway = gateway

    async def list_notifications(self) -> list[Notification]:
        data = await self._gateway.send("/notifications")
        return [_parse(NotificationIn, n).to_entity() for n in _as_list(data)]

    async def mark_read(self, notification_id: str) -> None:
        await self._gateway.send(f"/notifications/{notification_id}/read", method="PUT")

    async def mark_all_read(self) -> None:
        await self._gateway.send("/notifications/read-all", method="PUT")
