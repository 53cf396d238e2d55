"""Default announcement and reminder times for an event.

Every time produced here is at least ``MIN_SCHEDULE_LEAD`` after ``now`` and
strictly before the event starts. Announcements prefer a reasonable local
hour: after the evening cutoff they move to the next morning.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import List, Optional, Tuple

MIN_SCHEDULE_LEAD = timedelta(minutes=5)
ANNOUNCEMENT_CUTOFF_HOUR = 21
ANNOUNCEMENT_MORNING_HOUR = 9

DEFAULT_REMINDER_OFFSETS: List[Tuple[str, timedelta]] = [
    ("1 week", timedelta(days=7)),
    ("3 days", timedelta(days=3)),
    ("1 day", timedelta(days=1)),
]


@dataclass
class EventNotificationTimes:
    """Default schedule for one event."""

    announcement_time: Optional[datetime] = None
    reminder_times: List[datetime] = field(default_factory=list)


def _local_zone(now: datetime, tz: Optional[tzinfo]) -> tzinfo:
    return tz or now.tzinfo or timezone.utc


def clamp_schedule(candidate: datetime, now: datetime, starts_at: datetime) -> Optional[datetime]:
    """Pull ``candidate`` into the window ``[now + lead, starts_at)``.

    Returns:
        The clamped time, or None when ``now + lead`` is not before ``starts_at``
    """
    min_time = now + MIN_SCHEDULE_LEAD
    scheduled = max(candidate, min_time)

    if scheduled >= starts_at:
        return min_time if min_time < starts_at else None

    return scheduled


def announcement_time(
    now: datetime, starts_at: datetime, tz: Optional[tzinfo] = None
) -> Optional[datetime]:
    """Default time to announce an event.

    At or after 21:00 local the announcement waits until 09:00 the next
    morning; otherwise it goes out now (truncated to the minute). Either way
    it is clamped to at least five minutes from ``now`` and before the event.

    Args:
        now: Current time (timezone-aware)
        starts_at: Event start (timezone-aware)
        tz: Club time zone used for the cutoff; defaults to ``now``'s zone

    Returns:
        Announcement time, or None if the event is too close or already past

    Example:
        >>> now = datetime(2026, 3, 10, 22, 0, tzinfo=timezone.utc)
        >>> announcement_time(now, now + timedelta(days=5))
        datetime.datetime(2026, 3, 11, 9, 0, tzinfo=datetime.timezone.utc)
    """
    zone = _local_zone(now, tz)
    local_now = now.astimezone(zone)

    if local_now.hour >= ANNOUNCEMENT_CUTOFF_HOUR:
        next_day = local_now.date() + timedelta(days=1)
        candidate = datetime.combine(next_day, time(ANNOUNCEMENT_MORNING_HOUR), tzinfo=zone)
    else:
        candidate = local_now.replace(second=0, microsecond=0)

    return clamp_schedule(candidate, now, starts_at)


def default_reminder_times(starts_at: datetime, now: datetime) -> List[datetime]:
    """Reminder times one week, three days and one day before the event.

    Offsets that would land within five minutes of ``now`` (or in the past)
    are dropped. The result is strictly ascending and holds 0 to 3 entries.
    """
    min_time = now + MIN_SCHEDULE_LEAD
    reminders = []
    for _label, offset in DEFAULT_REMINDER_OFFSETS:
        candidate = starts_at - offset
        if candidate <= min_time or candidate >= starts_at:
            continue
        reminders.append(candidate)
    return reminders


def default_event_notification_times(
    starts_at: datetime,
    now: datetime,
    send_announcement: bool = True,
    send_reminders: bool = True,
    tz: Optional[tzinfo] = None,
) -> EventNotificationTimes:
    """Announcement and reminder defaults, honoring the two opt-in flags."""
    return EventNotificationTimes(
        announcement_time=announcement_time(now, starts_at, tz) if send_announcement else None,
        reminder_times=default_reminder_times(starts_at, now) if send_reminders else [],
    )
