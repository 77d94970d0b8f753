"""Process-wide client cache shared by the gateway-driven and push-driven paths."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable

from tutorlink_sync.domain.entities.conversation import Conversation
from tutorlink_sync.domain.entities.message import Message
from tutorlink_sync.domain.entities.notification import Notification

logger = logging.getLogger(__name__)

CONVERSATIONS_KEY = "conversations"

MessageUpdate = Callable[[list[Message] | None], list[Message]]
NotificationUpdate = Callable[[list[Notification] | None], list[Notification]]


def notifications_key(user_id: str) -> str:
    return f"notifications:{user_id}"


class SyncCache:
    """Messages per conversation, conversation previews and notifications per user.

    A conversation's ``last_message`` is derived from its message list via
    :meth:`refresh_preview` and is never written independently.
    """

    def __init__(self) -> None:
        self._messages: dict[str, list[Message]] = {}
        self._conversations: dict[str, Conversation] | None = None
        self._notifications: dict[str, list[Notification]] = {}
        self._stale: set[str] = set()

    # ---- messages ----------------------------------------------------------

    def messages(self, conversation_id: str) -> list[Message] | None:
        return self._messages.get(conversation_id)

    def set_messages(self, conversation_id: str, messages: Iterable[Message]) -> None:
        self._messages[conversation_id] = list(messages)

    def update_messages(self, conversation_id: str, update: MessageUpdate) -> list[Message]:
        updated = update(self._messages.get(conversation_id))
        self._messages[conversation_id] = updated
        return updated

    # ---- conversations -----------------------------------------------------

    @property
    def conversations_loaded(self) -> bool:
        return self._conversations is not None

    def conversations(self) -> list[Conversation]:
        if self._conversations is None:
            return []
        return sorted(
            self._conversations.values(),
            key=lambda c: c.updated_at.timestamp() if c.updated_at else 0.0,
            reverse=True,
        )

    def conversation(self, conversation_id: str) -> Conversation | None:
        if self._conversations is None:
            return None
        return self._conversations.get(conversation_id)

    def set_conversations(self, conversations: Iterable[Conversation]) -> None:
        self._conversations = {c.id: c for c in conversations}
        self._stale.discard(CONVERSATIONS_KEY)

    def preview(self, conversation_id: str) -> Message | None:
        conv = self.conversation(conversation_id)
        return conv.last_message if conv else None

    def refresh_preview(self, conversation_id: str, fallback: Message | None = None) -> None:
        """Point the preview at the newest cached message, or ``fallback`` if none."""
        conv = self.conversation(conversation_id)
        if conv is None:
            return
        messages = self._messages.get(conversation_id)
        if messages is None:
            return
        newest = messages[-1] if messages else fallback
        if newest == conv.last_message:
            return
        self._conversations[conversation_id] = replace(  # type: ignore[index]
            conv,
            last_message=newest,
            updated_at=newest.sent_at if newest else conv.updated_at,
        )

    # ---- notifications -----------------------------------------------------

    def notifications(self, user_id: str) -> list[Notification] | None:
        return self._notifications.get(user_id)

    def set_notifications(self, user_id: str, notifications: Iterable[Notification]) -> None:
        self._notifications[user_id] = list(notifications)
        self._stale.discard(notifications_key(user_id))

    def update_notifications(self, user_id: str, update: NotificationUpdate) -> list[Notification]:
        updated = update(self._notifications.get(user_id))
        self._notifications[user_id] = updated
        return updated

    # ---- staleness ---------------------------------------------------------

    def mark_stale(self, key: str) -> None:
        """Flag a cached list for refetch on next read; no fetch is triggered."""
        self._stale.add(key)

    def is_stale(self, key: str) -> bool:
        return key in self._stale

    def clear(self) -> None:
        self._messages.clear()
        self._conversations = None
        self._notifications.clear()
        self._stale.clear()
        logger.debug("Sync cache cleared")
