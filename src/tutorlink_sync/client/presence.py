from __future__ import annotations

import logging

from tutorlink_sync.client.protocol import PresenceEvent

logger = logging.getLogger(__name__)


class PresenceTracker:
    """user id -> online, last write wins.

    Events carry no timestamp or sequence number, so reordered delivery or
    several tabs of one user can leave an entry wrong until the next event.
    """

    def __init__(self) -> None:
        self._online: dict[str, bool] = {}

    def apply(self, user_id: str, online: bool) -> None:
        self._online[user_id] = online

    def on_presence(self, event: PresenceEvent) -> None:
        self.apply(event.user_id, event.online)

    def is_online(self, user_id: str) -> bool:
        return self._online.get(user_id, False)

    def snapshot(self) -> dict[str, bool]:
        return dict(self._online)

    def clear(self) -> None:
        self._online.clear()
