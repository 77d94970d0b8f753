from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from tutorlink_sync.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class Conversation:
    id: str
    members: frozenset[str] = field(default_factory=frozenset)
    title: str | None = None
    last_message: Message | None = None
    updated_at: datetime | None = None
