"""Server-side notification creation, fan-out and read state."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Iterable

from tutorlink_sync.application.dto.principal import Principal
from tutorlink_sync.application.exceptions import NotFoundError
from tutorlink_sync.application.ports.clock import Clock, SystemClock
from tutorlink_sync.application.ports.realtime import UserPusher
from tutorlink_sync.application.uow import UnitOfWork, UnitOfWorkFactory
from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.domain.value_objects.enums import NotificationType
from tutorlink_sync.infrastructure.ws.protocol import NotificationOut

logger = logging.getLogger(__name__)

NEW_NOTIFICATION_EVENT = "newNotification"


class NotificationDispatcher:
    """Stores a notification, then pushes it to the recipient's live sessions.

    The stored row is the source of truth: a failed push is logged and the
    client picks the notification up on its next fetch.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        pusher: UserPusher,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._pusher = pusher
        self._clock = clock or SystemClock()

    async def create(
        self,
        user_id: str,
        type: NotificationType,
        payload: dict[str, Any] | None = None,
    ) -> str:
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=NotificationType(type),
            payload=dict(payload or {}),
            created_at=self._clock.now(),
        )
        try:
            async with self._uow_factory() as uow:
                await uow.notifications.add(notification)
                await uow.commit()
        except Exception:
            logger.exception("Failed to store %s notification for user %s", notification.type, user_id)
            raise

        await self._push(notification)
        return notification.id

    async def create_for_users(
        self,
        user_ids: Iterable[str],
        type: NotificationType,
        payload: dict[str, Any] | None = None,
    ) -> list[str]:
        """Create one notification per user; a failing user does not stop the rest."""
        recipients = list(dict.fromkeys(user_ids))
        results = await asyncio.gather(
            *(self.create(uid, type, payload) for uid in recipients),
            return_exceptions=True,
        )
        created: list[str] = []
        for uid, result in zip(recipients, results):
            if isinstance(result, BaseException):
                logger.warning("Notification for user %s skipped: %s", uid, result)
                continue
            created.append(result)
        return created

    async def _push(self, notification: Notification) -> None:
        data = {"notification": NotificationOut.from_entity(notification).to_wire()}
        try:
            delivered = await self._pusher.push(notification.user_id, NEW_NOTIFICATION_EVENT, data)
        except Exception:
            logger.warning(
                "Push of notification %s to user %s failed",
                notification.id, notification.user_id, exc_info=True,
            )
            return
        logger.debug("Notification %s pushed to %d target(s)", notification.id, delivered)


async def list_notifications(
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[Notification]:
    return await uow.notifications.list_for_user(principal.user_id, limit=limit)


async def mark_read(
    notification_id: str,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    found = await uow.notifications.mark_read(principal.user_id, notification_id)
    if not found:
        raise NotFoundError(f"Notification {notification_id} not found")
    await uow.commit()


async def mark_all_read(principal: Principal, uow: UnitOfWork) -> int:
    count = await uow.notifications.mark_all_read(principal.user_id)
    await uow.commit()
    return count
