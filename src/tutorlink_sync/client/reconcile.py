"""Pure merge rules for the message and notification caches.

Every function takes the current list and an event and returns the new
list; inputs are never mutated. When an event changes nothing the input
list itself is returned, so callers can detect no-ops with ``is``.

A logical send may reach the cache three ways: as the optimistic entry
inserted on submit, as the HTTP response confirming it, and as the socket
push fanned out by the server. The two confirmed copies carry the same
server id; the optimistic copy only shares sender, body and an
approximate timestamp. The rules below collapse all three into a single
entry regardless of arrival order.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from typing import Sequence

from tutorlink_sync.config import settings
from tutorlink_sync.domain.entities.message import Message
from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.domain.value_objects.enums import DeliveryState

MATCH_WINDOW = timedelta(seconds=settings.OPTIMISTIC_MATCH_WINDOW_SECONDS)


def _index_of(messages: Sequence[Message], message_id: str) -> int:
    for i, m in enumerate(messages):
        if m.id == message_id:
            return i
    return -1


def is_same_send(
    optimistic: Message,
    incoming: Message,
    window: timedelta = MATCH_WINDOW,
) -> bool:
    """True if ``incoming`` is the server copy of a still-optimistic entry."""
    return (
        optimistic.state == DeliveryState.OPTIMISTIC
        and optimistic.sender_id == incoming.sender_id
        and optimistic.body == incoming.body
        and abs(optimistic.sent_at - incoming.sent_at) < window
    )


def append_optimistic(messages: Sequence[Message] | None, message: Message) -> list[Message]:
    return [*(messages or ()), message]


def confirm_sent(
    messages: Sequence[Message] | None,
    temp_id: str,
    confirmed: Message,
) -> list[Message]:
    """Swap the optimistic entry for the server copy.

    A push for the same server id may already be in the list, either
    appended or swapped in for the optimistic entry; every such copy is
    dropped and the confirmed message takes the first of their positions.
    """
    kept: list[Message] = []
    position: int | None = None
    for m in messages or ():
        if m.id == temp_id or m.id == confirmed.id:
            if position is None:
                position = len(kept)
            continue
        kept.append(m)
    if position is None:
        kept.append(confirmed)
    else:
        kept.insert(position, confirmed)
    return kept


def merge_inbound(
    messages: Sequence[Message] | None,
    incoming: Message,
    window: timedelta = MATCH_WINDOW,
) -> list[Message]:
    if messages is None:
        return [incoming]
    if _index_of(messages, incoming.id) != -1:
        return messages if isinstance(messages, list) else list(messages)
    for i, m in enumerate(messages):
        if is_same_send(m, incoming, window):
            updated = list(messages)
            updated[i] = incoming
            return updated
    return [*messages, incoming]


def discard(messages: Sequence[Message] | None, message_id: str) -> list[Message]:
    if not messages:
        return list(messages or ())
    return [m for m in messages if m.id != message_id]


def mark_read_by(messages: Sequence[Message] | None, reader_id: str) -> list[Message]:
    """The reader has seen everything the other members sent."""
    if not messages:
        return list(messages or ())
    if all(m.is_read or m.sender_id == reader_id for m in messages):
        return messages if isinstance(messages, list) else list(messages)
    return [
        replace(m, is_read=True) if m.sender_id != reader_id and not m.is_read else m
        for m in messages
    ]


def mark_delivered(messages: Sequence[Message] | None, message_id: str) -> list[Message]:
    if not messages:
        return list(messages or ())
    i = _index_of(messages, message_id)
    if i == -1 or messages[i].delivered:
        return messages if isinstance(messages, list) else list(messages)
    updated = list(messages)
    updated[i] = replace(messages[i], delivered=True)
    return updated


def merge_notification(
    notifications: Sequence[Notification] | None,
    incoming: Notification,
) -> list[Notification]:
    if notifications is None:
        return [incoming]
    if any(n.id == incoming.id for n in notifications):
        return notifications if isinstance(notifications, list) else list(notifications)
    return [incoming, *notifications]


def mark_notification_read(
    notifications: Sequence[Notification] | None,
    notification_id: str | None = None,
) -> list[Notification]:
    """Mark one notification read, or all of them when no id is given."""
    return [
        replace(n, is_read=True)
        if not n.is_read and (notification_id is None or n.id == notification_id)
        else n
        for n in notifications or ()
    ]
