from __future__ import annotations

import uuid
from typing import NewType

ConversationId = NewType("ConversationId", str)
MessageId = NewType("MessageId", str)
UserId = NewType("UserId", str)

TEMP_ID_PREFIX = "temp-"


def new_temp_id() -> MessageId:
    """Local id for a message the server has not acknowledged yet."""
    return MessageId(f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}")


def is_temp_id(message_id: str | None) -> bool:
    return bool(message_id) and message_id.startswith(TEMP_ID_PREFIX)
