"""Server -> client socket payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.domain.value_objects.enums import NotificationType


class WsOutbound(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class NotificationOut(WsOutbound):
    id: str
    user_id: str
    type: NotificationType
    payload: dict[str, Any] = {}
    is_read: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, notification: Notification) -> NotificationOut:
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type,
            payload=notification.payload,
            is_read=notification.is_read,
            created_at=notification.created_at,
        )


class PresenceOut(WsOutbound):
    user_id: str
    online: bool


class TypingOut(WsOutbound):
    conversation_id: str
    user_id: str
    is_typing: bool


class MessagesReadOut(WsOutbound):
    conversation_id: str
    user_id: str
