from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tutorlink_sync.domain.value_objects.enums import NotificationType


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    user_id: str
    type: NotificationType
    payload: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    created_at: datetime | None = None
