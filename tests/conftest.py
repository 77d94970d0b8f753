"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Awaitable, Callable

import pytest
from socketio.exceptions import ConnectionError as SocketConnectError

from tutorlink_sync.application.dto.principal import Principal
from tutorlink_sync.application.exceptions import AppError
from tutorlink_sync.client.session import SessionStore, SessionUser
from tutorlink_sync.domain.entities.conversation import Conversation
from tutorlink_sync.domain.entities.message import Message
from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.domain.value_objects.enums import NotificationType

T0 = datetime(2024, 5, 1, 17, 0, tzinfo=timezone.utc)

_ids = itertools.count(100)


@pytest.fixture
def principal() -> Principal:
    return Principal(user_id="42")


@pytest.fixture
def session() -> SessionStore:
    store = SessionStore()
    store.start(SessionUser(user_id="u1", token="tok-u1"))
    return store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeClock:
    """Wall and monotonic time that only move when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self._now = start
        self._mono = 1000.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._mono

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        self._mono += seconds


class FakeSleep:
    """Records requested delays and advances the clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self._clock.advance(seconds)
        await asyncio.sleep(0)


class RecordingNavigator:
    def __init__(self) -> None:
        self.paths: list[str] = []

    def redirect(self, path: str) -> None:
        self.paths.append(path)


def make_message(
    *,
    message_id: str | None = None,
    conversation_id: str = "c1",
    sender_id: str = "u1",
    body: str = "hello",
    sent_at: datetime = T0,
    is_read: bool = False,
) -> Message:
    return Message(
        id=message_id or str(next(_ids)),
        conversation_id=conversation_id,
        sender_id=sender_id,
        body=body,
        sent_at=sent_at,
        is_read=is_read,
    )


def make_conversation(
    conversation_id: str = "c1",
    *,
    members: tuple[str, ...] = ("u1", "u2"),
    last_message: Message | None = None,
) -> Conversation:
    return Conversation(
        id=conversation_id,
        members=frozenset(members),
        last_message=last_message,
        updated_at=last_message.sent_at if last_message else T0,
    )


def make_notification(
    *,
    notification_id: str | None = None,
    user_id: str = "u1",
    type: NotificationType = NotificationType.MESSAGE,
    payload: dict[str, Any] | None = None,
    is_read: bool = False,
) -> Notification:
    return Notification(
        id=notification_id or str(next(_ids)),
        user_id=user_id,
        type=type,
        payload=payload or {},
        is_read=is_read,
        created_at=T0,
    )


# ---- client-side API fakes ------------------------------------------------


@dataclass
class FakeMessagingApi:
    """Stands in for MessagingApi; hooks let a test interleave pushes."""

    sent: list[tuple[str, str]] = field(default_factory=list)
    created_for: list[str] = field(default_factory=list)
    conversations: list[Conversation] = field(default_factory=list)
    messages: dict[str, list[Message]] = field(default_factory=dict)
    fail_with: AppError | None = None
    before_reply: Callable[[Message], Awaitable[None] | None] | None = None
    new_conversation_id: str = "c-new"
    server_time: datetime = T0

    async def list_conversations(self) -> list[Conversation]:
        return list(self.conversations)

    async def list_messages(self, conversation_id: str) -> list[Message]:
        return list(self.messages.get(conversation_id, []))

    async def send_message(self, conversation_id: str, body: str) -> Message:
        self.sent.append((conversation_id, body))
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        reply = make_message(
            message_id=f"m{len(self.sent)}",
            conversation_id=conversation_id,
            body=body,
            sent_at=self.server_time,
        )
        if self.before_reply is not None:
            result = self.before_reply(reply)
            if result is not None:
                await result
        return reply

    async def create_conversation(self, recipient_id: str, title: str | None = None) -> str:
        self.created_for.append(recipient_id)
        return self.new_conversation_id


@dataclass
class FakeNotificationsApi:
    notifications: list[Notification] = field(default_factory=list)
    read: list[str] = field(default_factory=list)
    read_all_calls: int = 0

    async def list_notifications(self) -> list[Notification]:
        return list(self.notifications)

    async def mark_read(self, notification_id: str) -> None:
        self.read.append(notification_id)

    async def mark_all_read(self) -> None:
        self.read_all_calls += 1


# ---- socket fakes -----------------------------------------------------------


class FakeSocket:
    """Duck-typed socketio.AsyncClient."""

    def __init__(self, *, refuse: bool = False) -> None:
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.connect_calls: list[dict[str, Any]] = []
        self.connected = False
        self.disconnects = 0
        self._refuse = refuse

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_calls.append({"url": url, **kwargs})
        await asyncio.sleep(0)
        if self._refuse:
            raise SocketConnectError("refused")
        self.connected = True

    async def emit(self, event: str, data: Any = None) -> None:
        self.emitted.append((event, data))

    async def disconnect(self) -> None:
        self.connected = False
        self.disconnects += 1

    async def fire(self, event: str, data: Any = None) -> None:
        await self.handlers[event](data)


class FakeSocketServer:
    """Duck-typed socketio.AsyncServer recording emits and room changes."""

    def __init__(self) -> None:
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.emitted: list[dict[str, Any]] = []
        self.rooms: dict[str, set[str]] = {}
        self.fail_for: set[str] = set()

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event] = handler

    async def emit(
        self,
        event: str,
        data: Any = None,
        to: str | None = None,
        room: str | None = None,
        skip_sid: str | None = None,
    ) -> None:
        if to is not None and to in self.fail_for:
            raise RuntimeError(f"sid {to} is gone")
        self.emitted.append({"event": event, "data": data, "to": to, "room": room, "skip_sid": skip_sid})

    async def enter_room(self, sid: str, room: str) -> None:
        self.rooms.setdefault(room, set()).add(sid)

    async def leave_room(self, sid: str, room: str) -> None:
        self.rooms.get(room, set()).discard(sid)


# ---- server-side persistence fakes -----------------------------------------


@dataclass
class FakeNotificationRepo:
    rows: list[Notification] = field(default_factory=list)
    fail_for: set[str] = field(default_factory=set)

    async def add(self, notification: Notification) -> None:
        if notification.user_id in self.fail_for:
            raise RuntimeError(f"insert failed for {notification.user_id}")
        self.rows.append(notification)

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[Notification]:
        mine = [n for n in self.rows if n.user_id == user_id]
        return list(reversed(mine))[:limit]

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        for i, n in enumerate(self.rows):
            if n.id == notification_id and n.user_id == user_id:
                self.rows[i] = Notification(
                    id=n.id, user_id=n.user_id, type=n.type, payload=n.payload,
                    is_read=True, created_at=n.created_at,
                )
                return True
        return False

    async def mark_all_read(self, user_id: str) -> int:
        count = 0
        for n in list(self.rows):
            if n.user_id == user_id and not n.is_read:
                await self.mark_read(user_id, n.id)
                count += 1
        return count


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    notifications: FakeNotificationRepo = field(default_factory=FakeNotificationRepo)
    _committed: bool = False
    commits: int = 0

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self.commits += 1

    async def rollback(self) -> None:
        pass


def uow_factory_for(uow: FakeUoW) -> Callable[[], Any]:
    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        yield uow

    return _factory


@dataclass
class FakePusher:
    pushes: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    fail_for: set[str] = field(default_factory=set)

    async def push(self, user_id: str, event: str, data: dict[str, Any]) -> int:
        if user_id in self.fail_for:
            raise ConnectionError("socket gone")
        self.pushes.append((user_id, event, data))
        return 1
