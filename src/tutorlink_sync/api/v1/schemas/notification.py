from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tutorlink_sync.domain.value_objects.enums import NotificationType


class NotificationResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    type: NotificationType
    payload: dict[str, Any] = {}
    is_read: bool = False
    created_at: datetime | None = None


class CreateNotificationRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_ids: list[str] = Field(min_length=1)
    type: NotificationType
    payload: dict[str, Any] = {}


class CreateNotificationResponse(BaseModel):
    ids: list[str]
