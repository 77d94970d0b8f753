"""The one socket.io connection of an authenticated session."""
from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

import socketio
from pydantic import ValidationError
from socketio.exceptions import ConnectionError as SocketConnectError
from socketio.exceptions import SocketIOError

from tutorlink_sync.client.events import EventBus
from tutorlink_sync.client.protocol import (
    ConversationCreatedEvent,
    MessageDeliveredEvent,
    MessageIn,
    MessagesReadEvent,
    NotificationIn,
    PresenceEvent,
    TypingEvent,
    WireModel,
    unwrap_message,
    unwrap_notification,
)
from tutorlink_sync.client.session import SessionStore
from tutorlink_sync.config import settings

logger = logging.getLogger(__name__)

INBOUND_EVENTS: dict[str, type[WireModel]] = {
    "presence": PresenceEvent,
    "newMessage": MessageIn,
    "conversationCreated": ConversationCreatedEvent,
    "messagesRead": MessagesReadEvent,
    "typing": TypingEvent,
    "messageDelivered": MessageDeliveredEvent,
    "newNotification": NotificationIn,
}

_UNWRAP: dict[str, Callable[[Any], Any]] = {
    "newMessage": unwrap_message,
    "newNotification": unwrap_notification,
}

SocketFactory = Callable[[], socketio.AsyncClient]


def default_socket() -> socketio.AsyncClient:
    return socketio.AsyncClient(logger=False, engineio_logger=False)


class RealtimeChannel:
    """Owns the socket lifecycle and forwards parsed events to the bus.

    Holds no domain state; disconnects are silent and nothing missed while
    offline is replayed.
    """

    def __init__(
        self,
        session: SessionStore,
        bus: EventBus,
        *,
        url: str | None = None,
        socket_factory: SocketFactory = default_socket,
    ) -> None:
        self._session = session
        self._bus = bus
        self._url = url or settings.socket_url
        self._socket_factory = socket_factory
        self._sio: socketio.AsyncClient | None = None

    @property
    def connected(self) -> bool:
        return self._sio is not None and bool(self._sio.connected)

    @property
    def active(self) -> bool:
        return self._sio is not None

    async def connect(self) -> bool:
        if self._sio is not None:
            return True
        user, token = self._session.user, self._session.token
        if user is None or not token:
            logger.debug("No authenticated session, socket not started")
            return False

        sio = self._socket_factory()
        self._register(sio)
        # claimed before the handshake await so a second connect() is a no-op
        self._sio = sio
        try:
            await sio.connect(self._url, auth={"token": token}, transports=["websocket"])
        except SocketConnectError as exc:
            logger.warning("Socket connect to %s failed: %s", self._url, exc)
            if self._sio is sio:
                self._sio = None
            return False
        logger.info("Socket connected for user %s", user.user_id)
        return True

    async def close(self) -> None:
        sio, self._sio = self._sio, None
        if sio is None:
            return
        try:
            await sio.disconnect()
        except Exception:
            logger.warning("Socket disconnect raised", exc_info=True)
        logger.info("Socket closed")

    async def join_conversation(self, conversation_id: str) -> None:
        await self._emit("joinConversation", {"conversationId": conversation_id}, conversation_id)

    async def leave_conversation(self, conversation_id: str) -> None:
        await self._emit("leaveConversation", {"conversationId": conversation_id}, conversation_id)

    async def send_typing(self, conversation_id: str, is_typing: bool) -> None:
        await self._emit(
            "typing",
            {"conversationId": conversation_id, "isTyping": is_typing},
            conversation_id,
        )

    async def mark_conversation_read(self, conversation_id: str) -> None:
        await self._emit("markRead", {"conversationId": conversation_id}, conversation_id)

    async def dispatch(self, event: str, data: Any) -> None:
        """Validate one inbound socket event and publish it."""
        model = INBOUND_EVENTS.get(event)
        if model is None:
            return
        unwrap = _UNWRAP.get(event)
        try:
            parsed = model.model_validate(unwrap(data) if unwrap else data)
        except ValidationError:
            logger.debug("Dropping malformed %s event: %r", event, data)
            return
        await self._bus.publish(parsed)

    async def _emit(self, event: str, data: dict[str, Any], conversation_id: str) -> None:
        if self._sio is None or not conversation_id:
            return
        try:
            await self._sio.emit(event, data)
        except SocketIOError as exc:
            logger.debug("Emit %s dropped: %s", event, exc)

    def _register(self, sio: socketio.AsyncClient) -> None:
        sio.on("connect", self._on_connect)
        sio.on("disconnect", self._on_disconnect)
        for name in INBOUND_EVENTS:
            sio.on(name, self._handler(name))

    def _handler(self, event: str) -> Callable[[Any], Coroutine[Any, Any, None]]:
        async def handler(data: Any = None) -> None:
            await self.dispatch(event, data)

        return handler

    async def _on_connect(self) -> None:
        logger.debug("Socket handshake complete")

    async def _on_disconnect(self, *args: Any) -> None:
        logger.info("Socket disconnected")
