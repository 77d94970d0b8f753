"""Socket.IO server: authenticated handshake, presence and conversation rooms."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs

import jwt
import socketio
from socketio.exceptions import ConnectionRefusedError as HandshakeRefused

from tutorlink_sync.application.ports.auth import TokenVerifier
from tutorlink_sync.config import settings
from tutorlink_sync.infrastructure.ws.manager import ConnectionManager
from tutorlink_sync.infrastructure.ws.protocol import MessagesReadOut, PresenceOut, TypingOut

logger = logging.getLogger(__name__)


def room_for_conversation(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def create_socket_server() -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins="*" if "*" in settings.CORS_ORIGINS else settings.CORS_ORIGINS,
        logger=False,
        engineio_logger=False,
    )


def extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Token from ``auth.token``, falling back to the ``token`` query parameter."""
    if isinstance(auth, dict):
        token = auth.get("token")
        if isinstance(token, str) and token:
            return token

    scope: Any = environ.get("asgi.scope", environ)
    query_string: str | bytes = ""
    if isinstance(scope, dict):
        query_string = scope.get("query_string") or scope.get("QUERY_STRING") or ""
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    return token or None


def _conversation_id(data: Any) -> str | None:
    if isinstance(data, dict):
        value = data.get("conversationId")
    else:
        value = data
    if value is None or value == "":
        return None
    return str(value)


class RealtimeServer:
    """Registers the socket handlers on ``sio`` and tracks who is connected."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        verifier: TokenVerifier,
        manager: ConnectionManager,
    ) -> None:
        self.sio = sio
        self._verifier = verifier
        self.manager = manager
        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on("joinConversation", self.on_join_conversation)
        sio.on("leaveConversation", self.on_leave_conversation)
        sio.on("typing", self.on_typing)
        sio.on("markRead", self.on_mark_read)

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None) -> None:
        token = extract_token(environ, auth)
        if not token:
            raise HandshakeRefused("unauthorized")
        try:
            principal = await self._verifier.verify(token)
        except jwt.ExpiredSignatureError as exc:
            raise HandshakeRefused("jwt_expired") from exc
        except jwt.InvalidTokenError as exc:
            raise HandshakeRefused("unauthorized") from exc

        first = self.manager.connect(sid, principal.user_id)
        await self.sio.enter_room(sid, principal.room)
        if first:
            presence = PresenceOut(user_id=principal.user_id, online=True)
            await self.sio.emit("presence", presence.to_wire(), skip_sid=sid)

    async def on_disconnect(self, sid: str, *args: Any) -> None:
        user_id, last = self.manager.disconnect(sid)
        if user_id is not None and last:
            presence = PresenceOut(user_id=user_id, online=False)
            await self.sio.emit("presence", presence.to_wire())

    async def on_join_conversation(self, sid: str, data: Any = None) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None or self.manager.user_of(sid) is None:
            return
        await self.sio.enter_room(sid, room_for_conversation(conversation_id))

    async def on_leave_conversation(self, sid: str, data: Any = None) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            return
        await self.sio.leave_room(sid, room_for_conversation(conversation_id))

    async def on_typing(self, sid: str, data: Any = None) -> None:
        user_id = self.manager.user_of(sid)
        conversation_id = _conversation_id(data)
        if user_id is None or conversation_id is None:
            return
        is_typing = bool(data.get("isTyping")) if isinstance(data, dict) else False
        event = TypingOut(conversation_id=conversation_id, user_id=user_id, is_typing=is_typing)
        await self.sio.emit(
            "typing",
            event.to_wire(),
            room=room_for_conversation(conversation_id),
            skip_sid=sid,
        )

    async def on_mark_read(self, sid: str, data: Any = None) -> None:
        user_id = self.manager.user_of(sid)
        conversation_id = _conversation_id(data)
        if user_id is None or conversation_id is None:
            return
        event = MessagesReadOut(conversation_id=conversation_id, user_id=user_id)
        await self.sio.emit(
            "messagesRead",
            event.to_wire(),
            room=room_for_conversation(conversation_id),
            skip_sid=sid,
        )
