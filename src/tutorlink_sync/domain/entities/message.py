from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tutorlink_sync.domain.value_objects.enums import DeliveryState
from tutorlink_sync.domain.value_objects.ids import is_temp_id


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    sender_id: str
    body: str
    sent_at: datetime
    is_read: bool = False
    delivered: bool = False

    @property
    def state(self) -> DeliveryState:
        if is_temp_id(self.id):
            return DeliveryState.OPTIMISTIC
        return DeliveryState.CONFIRMED
