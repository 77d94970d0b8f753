from __future__ import annotations

from tutorlink_sync.domain.entities.notification import Notification
from tutorlink_sync.domain.value_objects.enums import NotificationType
from tutorlink_sync.infrastructure.db.models.notification import NotificationModel


def model_to_entity(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        user_id=model.user_id,
        type=NotificationType(model.type),
        payload=dict(model.payload or {}),
        is_read=model.is_read,
        created_at=model.created_at,
    )


def entity_to_model(entity: Notification) -> NotificationModel:
    model = NotificationModel(
        id=entity.id,
        user_id=entity.user_id,
        type=entity.type.value,
        payload=entity.payload,
        is_read=entity.is_read,
    )
    # left unset, the column falls back to now() on the server
    if entity.created_at is not None:
        model.created_at = entity.created_at
    return model
