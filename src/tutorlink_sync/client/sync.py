"""Client composition root: wires the gateway, channel, trackers and caches."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from tutorlink_sync.application.ports.clock import Clock, SystemClock
from tutorlink_sync.application.ports.navigation import Navigator
from tutorlink_sync.client.api import AuthApi, MessagingApi, NotificationsApi
from tutorlink_sync.client.cache import SyncCache
from tutorlink_sync.client.channel import RealtimeChannel, SocketFactory, default_socket
from tutorlink_sync.client.events import EventBus, Subscription
from tutorlink_sync.client.gateway import RequestGateway
from tutorlink_sync.client.messaging import Composer, MessageReconciler
from tutorlink_sync.client.notifications import AlertHook, NotificationInbox
from tutorlink_sync.client.presence import PresenceTracker
from tutorlink_sync.client.protocol import (
    ConversationCreatedEvent,
    MessageDeliveredEvent,
    MessageIn,
    MessagesReadEvent,
    NotificationIn,
    PresenceEvent,
    TypingEvent,
)
from tutorlink_sync.client.session import SessionStore, SessionUser
from tutorlink_sync.client.typing_indicator import TypingSignaller, TypingTracker

logger = logging.getLogger(__name__)


class SyncClient:
    """One authenticated session's view of the realtime state.

    The socket is opened on :meth:`start` (or :meth:`login`) and torn down,
    together with every bus subscription, on :meth:`logout` or when the
    gateway reports an expired session.
    """

    def __init__(
        self,
        *,
        session: SessionStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        socket_url: str | None = None,
        socket_factory: SocketFactory = default_socket,
        clock: Clock | None = None,
        navigator: Navigator | None = None,
        alert: AlertHook | None = None,
    ) -> None:
        clock = clock or SystemClock()
        self.session = session or SessionStore()
        self.bus = EventBus()
        self.cache = SyncCache()
        self.gateway = RequestGateway(
            self.session,
            base_url=base_url,
            client=http_client,
            clock=clock,
            navigator=navigator,
        )
        self.auth_api = AuthApi(self.gateway)
        self.messaging_api = MessagingApi(self.gateway)
        self.notifications_api = NotificationsApi(self.gateway)

        self.presence = PresenceTracker()
        self.typing = TypingTracker()
        self.messages = MessageReconciler(self.messaging_api, self.cache, self.session, clock=clock)
        self.notifications = NotificationInbox(
            self.notifications_api, self.cache, self.session, alert=alert,
        )
        self.channel = RealtimeChannel(
            self.session, self.bus, url=socket_url, socket_factory=socket_factory,
        )
        self.typing_signaller = TypingSignaller(self.channel.send_typing)
        self.composer = Composer(self.messages, self.typing_signaller)

        self._subscriptions: list[Subscription] = []
        self._teardown_task: asyncio.Task[None] | None = None
        self._unsubscribe_expired = self.session.subscribe_expired(self._on_session_expired)

    @property
    def started(self) -> bool:
        return bool(self._subscriptions)

    async def login(self, email: str, password: str) -> SessionUser:
        user, token = await self.auth_api.login(email, password)
        session_user = SessionUser(user_id=str(user["id"]), token=token, profile=dict(user))
        self.session.start(session_user)
        await self.start()
        return session_user

    async def start(self) -> bool:
        """Subscribe the trackers and open the socket if a session exists."""
        if not self.session.is_authenticated:
            return False
        if not self._subscriptions:
            self._subscribe()
        return await self.channel.connect()

    async def open_conversation(self, conversation_id: str | None, *, recipient_id: str | None = None) -> None:
        previous = self.composer.conversation_id
        if previous and previous != conversation_id:
            await self.channel.leave_conversation(previous)
        await self.composer.open(conversation_id, recipient_id=recipient_id)
        if conversation_id:
            await self.channel.join_conversation(conversation_id)

    async def logout(self) -> None:
        await self._teardown()
        self.session.clear()
        self.cache.clear()

    async def aclose(self) -> None:
        await self._teardown()
        self._unsubscribe_expired()
        await self.gateway.aclose()

    def _subscribe(self) -> None:
        handlers: list[tuple[type, Any]] = [
            (PresenceEvent, self.presence.on_presence),
            (TypingEvent, self.typing.on_typing),
            (MessageIn, self.messages.on_new_message),
            (MessagesReadEvent, self.messages.on_messages_read),
            (MessageDeliveredEvent, self.messages.on_message_delivered),
            (ConversationCreatedEvent, self.messages.on_conversation_created),
            (NotificationIn, self.notifications.on_new_notification),
        ]
        self._subscriptions = [self.bus.subscribe(event, handler) for event, handler in handlers]

    async def _teardown(self) -> None:
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions = []
        await self.composer.close()
        await self.channel.close()
        self.presence.clear()
        self.typing.clear()

    def _on_session_expired(self, message: str) -> None:
        logger.info("Tearing down realtime session: %s", message)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._teardown_task = loop.create_task(self._teardown(), name="sync-teardown")
