from __future__ import annotations

import logging
from typing import Any

import socketio

from tutorlink_sync.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


class SocketPusher:
    """Implements application.ports.realtime.UserPusher for this process's sockets."""

    def __init__(self, sio: socketio.AsyncServer, manager: ConnectionManager) -> None:
        self._sio = sio
        self._manager = manager

    async def push(self, user_id: str, event: str, data: dict[str, Any]) -> int:
        delivered = 0
        for sid in self._manager.sessions_for(user_id):
            try:
                await self._sio.emit(event, data, to=sid)
                delivered += 1
            except Exception:
                logger.warning("Push of %s to sid=%s failed", event, sid, exc_info=True)
        return delivered
