"""Wire models for socket events and HTTP payloads (camelCase on the wire)."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from tutorlink_sync.domain.entities.conversation import Conversation
from tutorlink_sync.domain.entities.message import Message
from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.domain.value_objects.enums import NotificationType


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        # ids arrive as integers from the REST API and as strings elsewhere
        coerce_numbers_to_str=True,
    )


class MessageIn(WireModel):
    id: str
    conversation_id: str
    sender_id: str
    body: str = ""
    sent_at: datetime
    is_read: bool = False
    delivered: bool = False

    @field_validator("is_read", "delivered", mode="before")
    @classmethod
    def _coerce_flag(cls, v: Any) -> Any:
        # MySQL TINYINT comes through as 0/1
        return bool(v) if v is not None else False

    @field_validator("sent_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    def to_entity(self) -> Message:
        return Message(
            id=self.id,
            conversation_id=self.conversation_id,
            sender_id=self.sender_id,
            body=self.body,
            sent_at=self.sent_at,
            is_read=self.is_read,
            delivered=self.delivered,
        )


class ConversationIn(WireModel):
    id: str
    members: list[str] = []
    title: str | None = None
    last_message: MessageIn | None = None
    updated_at: datetime | None = None

    @field_validator("members", mode="before")
    @classmethod
    def _member_ids(cls, v: Any) -> Any:
        if not v:
            return []
        return [str(m["id"]) if isinstance(m, dict) else str(m) for m in v]

    @field_validator("updated_at")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v) if v is not None else None

    def to_entity(self) -> Conversation:
        return Conversation(
            id=self.id,
            members=frozenset(self.members),
            title=self.title,
            last_message=self.last_message.to_entity() if self.last_message else None,
            updated_at=self.updated_at,
        )


class NotificationIn(WireModel):
    id: str
    user_id: str
    type: NotificationType
    payload: dict[str, Any] = {}
    is_read: bool = False
    created_at: datetime | None = None

    @field_validator("payload", mode="before")
    @classmethod
    def _payload(cls, v: Any) -> Any:
        # stored as a JSON string by some backends
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError:
                return {}
        return v if isinstance(v, dict) else {}

    @field_validator("is_read", mode="before")
    @classmethod
    def _coerce_flag(cls, v: Any) -> Any:
        return bool(v) if v is not None else False

    def to_entity(self) -> Notification:
        return Notification(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            payload=dict(self.payload),
            is_read=self.is_read,
            created_at=_as_utc(self.created_at) if self.created_at else None,
        )


class PresenceEvent(WireModel):
    user_id: str
    online: bool


class TypingEvent(WireModel):
    conversation_id: str
    user_id: str
    is_typing: bool


class MessagesReadEvent(WireModel):
    conversation_id: str
    user_id: str


class MessageDeliveredEvent(WireModel):
    message_id: str
    conversation_id: str | None = None


class ConversationCreatedEvent(WireModel):
    conversation_id: str | None = None


def unwrap_message(data: Any) -> Any:
    """newMessage carries the message itself; accept a {"message": ...} wrapper too."""
    if isinstance(data, dict) and isinstance(data.get("message"), dict):
        return data["message"]
    return data


def unwrap_notification(data: Any) -> Any:
    if isinstance(data, dict) and isinstance(data.get("notification"), dict):
        return data["notification"]
    return data
