"""Domain models for the notification dispatcher."""

from .models import (
    ADMIN_ROLES,
    COACH_ROLES,
    Event,
    InviteStatus,
    NotificationCategory,
    NotificationPreferences,
    PushSubscription,
    Role,
    ScheduledNotification,
    TargetType,
    new_id,
)

__all__ = [
    "ScheduledNotification",
    "PushSubscription",
    "NotificationPreferences",
    "Event",
    "TargetType",
    "NotificationCategory",
    "InviteStatus",
    "Role",
    "ADMIN_ROLES",
    "COACH_ROLES",
    "new_id",
]
