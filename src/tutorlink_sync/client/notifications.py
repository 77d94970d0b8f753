from __future__ import annotations

import logging
from typing import Callable

from tutorlink_sync.client.api import NotificationsApi
from tutorlink_sync.client.cache import SyncCache, notifications_key
from tutorlink_sync.client.protocol import NotificationIn
from tutorlink_sync.client.reconcile import mark_notification_read, merge_notification
from tutorlink_sync.client.session import SessionStore
from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.domain.value_objects.enums import NotificationType

logger = logging.getLogger(__name__)

AlertHook = Callable[[Notification, str], None]

_FALLBACK_TEXT: dict[NotificationType, str] = {
    NotificationType.MESSAGE: "You have a new message",
    NotificationType.CONVERSATION: "You have a new conversation",
    NotificationType.NEW_BOOKING: "You have a new session booking",
    NotificationType.SESSION_CANCELED: "A session was canceled",
    NotificationType.SESSION_COMPLETED: "A session was completed",
    NotificationType.NEW_REVIEW: "You received a new review",
    NotificationType.PAYMENT_COMPLETED: "Payment completed successfully",
    NotificationType.PAYMENT_FAILED: "Payment failed",
    NotificationType.TASK_ASSIGNED: "You have a new task",
}


def describe_notification(notification: Notification) -> str:
    payload = notification.payload
    if payload.get("message"):
        return str(payload["message"])
    if notification.type == NotificationType.MESSAGE and payload.get("excerpt"):
        return str(payload["excerpt"])
    return _FALLBACK_TEXT.get(notification.type, "You have a new notification")


class NotificationInbox:
    """The current user's notification list, fed by fetches and pushes."""

    def __init__(
        self,
        api: NotificationsApi,
        cache: SyncCache,
        session: SessionStore,
        *,
        alert: AlertHook | None = None,
    ) -> None:
        self._api = api
        self._cache = cache
        self._session = session
        self._alert = alert

    def items(self) -> list[Notification]:
        user_id = self._session.user_id
        if user_id is None:
            return []
        return list(self._cache.notifications(user_id) or ())

    def unread_count(self) -> int:
        return sum(1 for n in self.items() if not n.is_read)

    async def load(self) -> list[Notification]:
        user_id = self._session.user_id
        if user_id is None:
            return []
        notifications = await self._api.list_notifications()
        self._cache.set_notifications(user_id, notifications)
        return notifications

    def on_new_notification(self, event: NotificationIn) -> None:
        user_id = self._session.user_id
        if user_id is None or event.user_id != user_id:
            return
        notification = event.to_entity()
        before = self._cache.notifications(user_id)
        after = self._cache.update_notifications(user_id, lambda ns: merge_notification(ns, notification))
        if after is before:
            logger.debug("Duplicate notification %s ignored", notification.id)
            return
        if self._alert is not None:
            try:
                self._alert(notification, describe_notification(notification))
            except Exception:
                logger.exception("Notification alert hook failed")

    async def mark_read(self, notification_id: str) -> None:
        user_id = self._session.user_id
        await self._api.mark_read(notification_id)
        if user_id is None:
            return
        self._cache.update_notifications(user_id, lambda ns: mark_notification_read(ns, notification_id))
        self._cache.mark_stale(notifications_key(user_id))

    async def mark_all_read(self) -> None:
        user_id = self._session.user_id
        await self._api.mark_all_read()
        if user_id is None:
            return
        self._cache.update_notifications(user_id, mark_notification_read)
        self._cache.mark_stale(notifications_key(user_id))
