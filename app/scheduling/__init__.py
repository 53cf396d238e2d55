"""Default schedule times and event notification planning."""

from .calculator import (
    ANNOUNCEMENT_CUTOFF_HOUR,
    ANNOUNCEMENT_MORNING_HOUR,
    DEFAULT_REMINDER_OFFSETS,
    MIN_SCHEDULE_LEAD,
    EventNotificationTimes,
    announcement_time,
    clamp_schedule,
    default_event_notification_times,
    default_reminder_times,
)
from .exceptions import DuplicateAnnouncementError, SchedulingError
from .planner import (
    build_event_notification,
    build_event_notification_content,
    format_event_time,
    plan_event_notifications,
    schedule_event_notifications,
)

__all__ = [
    # Calculator
    "MIN_SCHEDULE_LEAD",
    "ANNOUNCEMENT_CUTOFF_HOUR",
    "ANNOUNCEMENT_MORNING_HOUR",
    "DEFAULT_REMINDER_OFFSETS",
    "EventNotificationTimes",
    "announcement_time",
    "clamp_schedule",
    "default_reminder_times",
    "default_event_notification_times",
    # Planner
    "format_event_time",
    "build_event_notification_content",
    "build_event_notification",
    "plan_event_notifications",
    "schedule_event_notifications",
    # Exceptions
    "SchedulingError",
    "DuplicateAnnouncementError",
]
