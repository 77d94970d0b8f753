from __future__ import annotations

from typing import Any, Protocol


class UserPusher(Protocol):
    """Best-effort push of one event to every live session of a user."""

    async def push(self, user_id: str, event: str, data: dict[str, Any]) -> int: ...
