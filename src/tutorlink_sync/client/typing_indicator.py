"""Typing indicators: inbound per-conversation sets and the outbound debounce."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from tutorlink_sync.client.protocol import TypingEvent
from tutorlink_sync.config import settings

logger = logging.getLogger(__name__)

EmitTyping = Callable[[str, bool], Awaitable[None]]


class TypingTracker:
    """Who is composing in each conversation.

    There is no expiry: a lost stop event leaves the user shown as typing
    until the next event for them arrives.
    """

    def __init__(self) -> None:
        self._typing: dict[str, set[str]] = {}

    def apply(self, conversation_id: str, user_id: str, is_typing: bool) -> None:
        users = self._typing.setdefault(conversation_id, set())
        if is_typing:
            users.add(user_id)
        else:
            users.discard(user_id)
            if not users:
                del self._typing[conversation_id]

    def on_typing(self, event: TypingEvent) -> None:
        self.apply(event.conversation_id, event.user_id, event.is_typing)

    def typing_in(self, conversation_id: str) -> frozenset[str]:
        return frozenset(self._typing.get(conversation_id, ()))

    def clear(self) -> None:
        self._typing.clear()


class TypingSignaller:
    """Turns compose-box edits into typing start/stop emissions.

    ``True`` is emitted once when input goes from blank to non-blank and
    ``False`` after ``idle_seconds`` without further input.
    """

    def __init__(self, emit: EmitTyping, *, idle_seconds: float = settings.TYPING_IDLE_SECONDS) -> None:
        self._emit = emit
        self._idle_seconds = idle_seconds
        self._conversation_id: str | None = None
        self._idle_task: asyncio.Task[None] | None = None
        self.is_typing = False

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    async def set_conversation(self, conversation_id: str | None) -> None:
        if conversation_id == self._conversation_id:
            return
        await self.stop()
        self._conversation_id = conversation_id

    async def on_input(self, text: str) -> None:
        self._cancel_idle()
        cid = self._conversation_id
        if not cid:
            return
        if not text.strip():
            await self.stop()
            return
        # re-armed before the emit await so an interleaved call cancels this timer
        self._idle_task = asyncio.create_task(self._stop_when_idle(cid), name=f"typing-idle-{cid}")
        if not self.is_typing:
            self.is_typing = True
            await self._emit(cid, True)

    async def stop(self) -> None:
        self._cancel_idle()
        if self.is_typing and self._conversation_id:
            self.is_typing = False
            await self._emit(self._conversation_id, False)
        self.is_typing = False

    def _cancel_idle(self) -> None:
        if self._idle_task is not None:
            self._idle_task.cancel()
            self._idle_task = None

    async def _stop_when_idle(self, conversation_id: str) -> None:
        await asyncio.sleep(self._idle_seconds)
        # detach first so a concurrent on_input cannot cancel the emit
        if self._idle_task is asyncio.current_task():
            self._idle_task = None
        if self.is_typing and self._conversation_id == conversation_id:
            self.is_typing = False
            try:
                await self._emit(conversation_id, False)
            except Exception:
                logger.exception("Failed to emit typing stop for %s", conversation_id)
