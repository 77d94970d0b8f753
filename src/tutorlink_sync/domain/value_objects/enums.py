from __future__ import annotations

from enum import StrEnum


class DeliveryState(StrEnum):
    OPTIMISTIC = "optimistic"
    CONFIRMED = "confirmed"


class NotificationType(StrEnum):
    MESSAGE = "message"
    CONVERSATION = "conversation"
    NEW_BOOKING = "new_booking"
    SESSION_CANCELED = "session_canceled"
    SESSION_COMPLETED = "session_completed"
    NEW_REVIEW = "new_review"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_FAILED = "payment_failed"
    TASK_ASSIGNED = "task_assigned"
