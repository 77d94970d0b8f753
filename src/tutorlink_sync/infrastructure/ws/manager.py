"""In-process registry of connected socket sessions."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks socket session ids per user."""

    def __init__(self) -> None:
        self._sessions: dict[str, set[str]] = {}
        self._owners: dict[str, str] = {}

    def connect(self, sid: str, user_id: str) -> bool:
        """Register a session; True if it is the user's first live one."""
        sids = self._sessions.setdefault(user_id, set())
        first = not sids
        sids.add(sid)
        self._owners[sid] = user_id
        logger.debug("Socket connected: %s sid=%s (sessions=%d)", user_id, sid, len(sids))
        return first

    def disconnect(self, sid: str) -> tuple[str | None, bool]:
        """Forget a session; returns (user_id, True if it was the user's last)."""
        user_id = self._owners.pop(sid, None)
        if user_id is None:
            return None, False
        sids = self._sessions.get(user_id)
        if sids:
            sids.discard(sid)
            if not sids:
                del self._sessions[user_id]
                logger.debug("Socket disconnected: %s (offline)", user_id)
                return user_id, True
        logger.debug("Socket disconnected: %s sid=%s", user_id, sid)
        return user_id, False

    def user_of(self, sid: str) -> str | None:
        return self._owners.get(sid)

    def sessions_for(self, user_id: str) -> list[str]:
        return sorted(self._sessions.get(user_id, ()))

    def is_online(self, user_id: str) -> bool:
        return bool(self._sessions.get(user_id))

    def user_count(self) -> int:
        return len(self._sessions)
