"""Import all models so Base.metadata knows every table."""
from tutorlink_sync.infrastructure.db.models.notification import NotificationModel

__all__ = [
    "NotificationModel",
]
