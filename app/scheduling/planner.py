"""Turn an event into the scheduled notifications it should produce.

The planner words announcement, reminder and update messages for an event
and places them at the default times from the calculator. Saving goes
through ``schedule_event_notifications`` so an event never holds two
pending announcements.
"""

from datetime import datetime, tzinfo
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.domain.models import Event, NotificationCategory, ScheduledNotification, TargetType
from app.logging import get_logger
from app.persistence.repositories import ScheduledNotificationRepository

from .calculator import default_event_notification_times
from .exceptions import DuplicateAnnouncementError, SchedulingError

logger = get_logger(__name__, component="scheduling")

TITLE_MAX_LENGTH = 120
BODY_MAX_LENGTH = 500

ANNOUNCEMENT_TARGETS = frozenset({TargetType.EVENT_ALL})
REMINDER_TARGETS = frozenset({TargetType.EVENT_ALL, TargetType.EVENT_NOT_RSVPD})


def format_event_time(starts_at: datetime, tz: Optional[tzinfo] = None) -> str:
    """Short human form of an event start, e.g. ``Tue, Mar 10, 2:00 PM``."""
    local = starts_at.astimezone(tz) if tz else starts_at
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local:%a}, {local:%b} {local.day}, {hour}:{local:%M} {meridiem}"


def truncate_text(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, ending with an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def build_event_notification_content(
    event: Event,
    category: NotificationCategory,
    tz: Optional[tzinfo] = None,
) -> Dict[str, str]:
    """Title, body and link for an event notification of ``category``.

    Anything other than an announcement or update is worded as a reminder.
    """
    when = format_event_time(event.starts_at, tz)
    location = f" at {event.location}" if event.location else ""
    url = f"/events/{event.id}"
    category = NotificationCategory(category)

    if category is NotificationCategory.ANNOUNCEMENT:
        title = f"New event: {event.title}"
        body = f"{when}{location}. RSVP in the app."
    elif category is NotificationCategory.EVENT_UPDATE:
        title = f"Update: {event.title}"
        body = f"Event details updated. {when}{location}."
    else:
        title = f"Reminder: {event.title}"
        body = f"{when}{location}. RSVP if you haven't yet."

    return {
        "title": truncate_text(title, TITLE_MAX_LENGTH),
        "body": truncate_text(body, BODY_MAX_LENGTH),
        "url": url,
    }


def build_event_notification(
    event: Event,
    category: NotificationCategory,
    scheduled_for: datetime,
    target_type: TargetType,
    created_by: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> ScheduledNotification:
    """Build one unsent event notification after checking its target and time.

    Raises:
        SchedulingError: If the time is not before the event or the target
            type does not suit the category
    """
    category = NotificationCategory(category)
    target_type = TargetType(target_type)

    if scheduled_for >= event.starts_at:
        raise SchedulingError("Scheduled time must be before the event starts")
    if category is NotificationCategory.ANNOUNCEMENT and target_type not in ANNOUNCEMENT_TARGETS:
        raise SchedulingError("Announcements must target everyone in the event")
    if category is NotificationCategory.REMINDER and target_type not in REMINDER_TARGETS:
        raise SchedulingError("Reminders must target event_all or event_not_rsvpd")

    content = build_event_notification_content(event, category, tz)
    return ScheduledNotification(
        title=content["title"],
        body=content["body"],
        url=content["url"],
        scheduled_for=scheduled_for,
        target_type=target_type,
        target_id=event.id,
        category=category,
        event_id=event.id,
        sent=False,
        created_by=created_by,
    )


def plan_event_notifications(
    event: Event,
    now: datetime,
    send_announcement: bool = True,
    send_reminders: bool = True,
    reminder_target: TargetType = TargetType.EVENT_NOT_RSVPD,
    created_by: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> List[ScheduledNotification]:
    """Default announcement and reminders for a newly created event.

    Returns an empty list for canceled events and for events too close to
    schedule anything.
    """
    if event.is_canceled:
        return []

    times = default_event_notification_times(
        event.starts_at, now, send_announcement, send_reminders, tz
    )

    planned: List[ScheduledNotification] = []
    if times.announcement_time is not None:
        planned.append(
            build_event_notification(
                event,
                NotificationCategory.ANNOUNCEMENT,
                times.announcement_time,
                TargetType.EVENT_ALL,
                created_by,
                tz,
            )
        )
    for reminder_time in times.reminder_times:
        planned.append(
            build_event_notification(
                event,
                NotificationCategory.REMINDER,
                reminder_time,
                reminder_target,
                created_by,
                tz,
            )
        )
    return planned


def schedule_event_notifications(
    session: Session, notifications: List[ScheduledNotification]
) -> List[ScheduledNotification]:
    """Persist planned notifications.

    Raises:
        DuplicateAnnouncementError: If an event would end up with two
            pending announcements
    """
    repository = ScheduledNotificationRepository(session)
    seen_announcements = set()

    for notification in notifications:
        if notification.category != NotificationCategory.ANNOUNCEMENT or not notification.event_id:
            continue
        if notification.event_id in seen_announcements or repository.has_unsent_announcement(
            notification.event_id
        ):
            raise DuplicateAnnouncementError(notification.event_id)
        seen_announcements.add(notification.event_id)

    saved = repository.add_many(notifications)
    logger.info(
        f"Scheduled {len(saved)} event notification(s)",
        extra={
            "event": "scheduling.notifications.saved",
            "count": len(saved),
            "event_ids": sorted({n.event_id for n in saved if n.event_id}),
        },
    )
    return saved
