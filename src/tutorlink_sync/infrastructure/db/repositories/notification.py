from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.infrastructure.db.mappers.notification import entity_to_model, model_to_entity
from tutorlink_sync.infrastructure.db.models.notification import NotificationModel


class NotificationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, notification: Notification) -> None:
        self._session.add(entity_to_model(notification))
        await self._session.flush()

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [model_to_entity(m) for m in result.scalars().all()]

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .values(is_read=True)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def mark_all_read(self, user_id: str) -> int:
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .values(is_read=True)
        )
        result = await self._session.execute(stmt)
        return result.rowcount
