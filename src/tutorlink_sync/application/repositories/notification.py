from __future__ import annotations

from typing import Protocol

from tutorlink_sync.domain.entities.notification import Notification


class NotificationRepository(Protocol):
    async def add(self, notification: Notification) -> None: ...

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[Notification]: ...

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        """Return False if the user has no such notification."""
        ...

    async def mark_all_read(self, user_id: str) -> int: ...
