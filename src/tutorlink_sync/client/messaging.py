"""Optimistic send flow and inbound message routing over the shared cache."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from tutorlink_sync.application.exceptions import AppError
from tutorlink_sync.application.ports.clock import Clock, SystemClock
from tutorlink_sync.client.api import MessagingApi
from tutorlink_sync.client.cache import CONVERSATIONS_KEY, SyncCache, notifications_key
from tutorlink_sync.client.protocol import (
    ConversationCreatedEvent,
    MessageDeliveredEvent,
    MessageIn,
    MessagesReadEvent,
)
from tutorlink_sync.client.reconcile import (
    append_optimistic,
    confirm_sent,
    discard,
    is_same_send,
    mark_delivered,
    mark_read_by,
    merge_inbound,
)
from tutorlink_sync.client.session import SessionStore
from tutorlink_sync.client.typing_indicator import TypingSignaller
from tutorlink_sync.domain.entities.conversation import Conversation
from tutorlink_sync.domain.entities.message import Message
from tutorlink_sync.domain.value_objects.enums import DeliveryState
from tutorlink_sync.domain.value_objects.ids import new_temp_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SendOutcome:
    conversation_id: str | None
    message: Message | None
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return self.message is not None and self.error is None


class MessageReconciler:
    def __init__(
        self,
        api: MessagingApi,
        cache: SyncCache,
        session: SessionStore,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._api = api
        self._cache = cache
        self._session = session
        self._clock = clock or SystemClock()

    async def send(
        self,
        conversation_id: str | None,
        body: str,
        *,
        recipient_id: str | None = None,
    ) -> SendOutcome:
        """Insert an optimistic message, send it, then confirm or roll back.

        Failures never raise: the outcome carries the error and the cache
        is back to its pre-send state.
        """
        body = body.strip()
        sender_id = self._session.user_id
        if not body or sender_id is None:
            return SendOutcome(conversation_id, None)

        temp_id: str | None = None
        previous: Message | None = None
        try:
            if not conversation_id and recipient_id:
                conversation_id = await self._api.create_conversation(recipient_id)
                self._cache.mark_stale(CONVERSATIONS_KEY)
            if not conversation_id:
                return SendOutcome(None, None)

            optimistic = Message(
                id=new_temp_id(),
                conversation_id=conversation_id,
                sender_id=sender_id,
                body=body,
                sent_at=self._clock.now(),
            )
            temp_id = optimistic.id
            previous = self._cache.preview(conversation_id)
            self._cache.update_messages(conversation_id, lambda msgs: append_optimistic(msgs, optimistic))
            self._cache.refresh_preview(conversation_id)

            sent = await self._api.send_message(conversation_id, body)

            self._cache.update_messages(conversation_id, lambda msgs: confirm_sent(msgs, temp_id, sent))
            self._cache.refresh_preview(conversation_id)
            self._cache.mark_stale(CONVERSATIONS_KEY)
            return SendOutcome(conversation_id, sent)
        except AppError as exc:
            logger.warning("Send to conversation %s failed: %s", conversation_id, exc.detail)
            if conversation_id and temp_id:
                self._rollback(conversation_id, temp_id, previous)
            return SendOutcome(conversation_id, None, error=exc)

    def _rollback(self, conversation_id: str, temp_id: str, previous: Message | None) -> None:
        self._cache.update_messages(conversation_id, lambda msgs: discard(msgs, temp_id))
        preview = self._cache.preview(conversation_id)
        if preview is not None and preview.id == temp_id:
            self._cache.refresh_preview(conversation_id, fallback=previous)

    async def load_conversations(self) -> None:
        conversations = await self._api.list_conversations()
        self._cache.set_conversations(conversations)
        for conv in conversations:
            if self._cache.messages(conv.id):
                self._cache.refresh_preview(conv.id)

    async def conversations(self) -> list[Conversation]:
        """Cached conversation list, refetched first when missing or stale."""
        if not self._cache.conversations_loaded or self._cache.is_stale(CONVERSATIONS_KEY):
            await self.load_conversations()
        return self._cache.conversations()

    async def load_messages(self, conversation_id: str) -> list[Message]:
        fetched = await self._api.list_messages(conversation_id)
        # sends still in flight keep their optimistic entries
        pending = [
            m for m in self._cache.messages(conversation_id) or ()
            if m.state == DeliveryState.OPTIMISTIC
        ]
        merged = fetched
        for m in pending:
            # the server copy already landed in the fetched page
            if any(is_same_send(m, f) for f in fetched):
                continue
            merged = append_optimistic(merged, m)
        self._cache.set_messages(conversation_id, merged)
        self._cache.refresh_preview(conversation_id)
        return merged

    def on_new_message(self, event: MessageIn) -> None:
        message = event.to_entity()
        cid = message.conversation_id
        before = self._cache.messages(cid)
        after = self._cache.update_messages(cid, lambda msgs: merge_inbound(msgs, message))
        if after is before:
            logger.debug("Duplicate push for message %s ignored", message.id)
            return
        self._cache.refresh_preview(cid)
        self._cache.mark_stale(CONVERSATIONS_KEY)
        if self._session.user_id:
            self._cache.mark_stale(notifications_key(self._session.user_id))

    def on_messages_read(self, event: MessagesReadEvent) -> None:
        if self._cache.messages(event.conversation_id) is None:
            return
        self._cache.update_messages(
            event.conversation_id,
            lambda msgs: mark_read_by(msgs, event.user_id),
        )
        self._cache.refresh_preview(event.conversation_id)
        self._cache.mark_stale(CONVERSATIONS_KEY)

    def on_message_delivered(self, event: MessageDeliveredEvent) -> None:
        if not event.conversation_id or self._cache.messages(event.conversation_id) is None:
            return
        self._cache.update_messages(
            event.conversation_id,
            lambda msgs: mark_delivered(msgs, event.message_id),
        )
        self._cache.refresh_preview(event.conversation_id)

    def on_conversation_created(self, event: ConversationCreatedEvent) -> None:
        self._cache.mark_stale(CONVERSATIONS_KEY)
        if self._session.user_id:
            self._cache.mark_stale(notifications_key(self._session.user_id))


class Composer:
    """The compose box: draft text, typing signals and submit."""

    def __init__(self, reconciler: MessageReconciler, typing: TypingSignaller) -> None:
        self._reconciler = reconciler
        self._typing = typing
        self.text = ""
        self.conversation_id: str | None = None
        self.recipient_id: str | None = None

    async def open(self, conversation_id: str | None, *, recipient_id: str | None = None) -> None:
        self.conversation_id = conversation_id
        self.recipient_id = None if conversation_id else recipient_id
        await self._typing.set_conversation(conversation_id)

    async def input(self, text: str) -> None:
        self.text = text
        await self._typing.on_input(text)

    async def submit(self) -> SendOutcome:
        body = self.text.strip()
        if not body:
            return SendOutcome(self.conversation_id, None)
        self.text = ""
        await self._typing.on_input("")
        outcome = await self._reconciler.send(
            self.conversation_id,
            body,
            recipient_id=self.recipient_id,
        )
        if outcome.conversation_id and outcome.conversation_id != self.conversation_id:
            await self.open(outcome.conversation_id)
        if outcome.error is not None:
            self.text = body
        return outcome

    async def close(self) -> None:
        await self._typing.set_conversation(None)
