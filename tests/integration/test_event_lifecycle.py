"""Integration test for an event from creation to cancellation.

Tests end-to-end flow:
- Default announcement and reminders planned at event creation
- Dispatch runs at the scheduled times reach the right audiences
- RSVPs shrink the reminder audience (including guardians answering for minors)
- Cancellation drops pending reminders and notifies the audience immediately
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.config.models import DispatchConfig
from app.dispatch import EventCancellationNotifier, NotificationDelivery, NotificationDispatcher
from app.domain.models import NotificationCategory
from app.persistence.database import get_session
from app.persistence.repositories import EventRepository, ScheduledNotificationRepository
from app.scheduling import plan_event_notifications, schedule_event_notifications
from tests.helpers import add_coach, add_event, add_group, add_profile, add_rider, add_rsvp

PACIFIC = ZoneInfo("America/Los_Angeles")
# Tuesday 07:00 in Los Angeles
CREATED_AT = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)
STARTS_AT = datetime(2026, 3, 20, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def event(database):
    with get_session() as session:
        add_group(session, "group-a")
        add_profile(session, "coach", roles=["roll_model"])
        add_profile(session, "adult", roles=["rider"], group_id="group-a")
        add_profile(session, "parent", roles=["parent"])
        add_profile(session, "admin", roles=["admin"])
        add_coach(session, "coach", "group-a")
        add_rider(session, "minor", "group-a", guardians=["parent"])
        event = add_event(session, "event-1", starts_at=STARTS_AT, group_ids=["group-a"])
        schedule_event_notifications(session, plan_event_notifications(event, CREATED_AT, tz=PACIFIC))
    return event


@pytest.fixture
def delivery(dispatch_config, email_sender, push_client):
    return NotificationDelivery(
        dispatch_config, email_sender, "https://app.everybodybike.org", set(), push_client
    )


@pytest.fixture
def dispatcher(delivery):
    return NotificationDispatcher(DispatchConfig(), delivery)


def emailed(email_sender):
    addresses = sorted(c.args[0].split("@")[0] for c in email_sender.send.call_args_list)
    email_sender.send.reset_mock()
    return addresses


def pending():
    with get_session() as session:
        return [
            n.category
            for n in ScheduledNotificationRepository(session).list_for_event("event-1")
            if not n.sent
        ]


class TestEventLifecycle:
    def test_create_remind_cancel(self, event, dispatcher, delivery, email_sender):
        assert pending() == [NotificationCategory.ANNOUNCEMENT] + [NotificationCategory.REMINDER] * 3

        # Nothing is due at creation time
        assert dispatcher.run_once(now=CREATED_AT).processed == 0

        # Announcement goes out five minutes later to the whole group
        announced = dispatcher.run_once(now=CREATED_AT + timedelta(minutes=5))
        assert announced.processed == 1
        assert emailed(email_sender) == ["adult", "coach", "parent"]

        # The adult answers for themself and the guardian for the minor
        with get_session() as session:
            add_rsvp(session, "event-1", "adult")
            add_rsvp(session, "event-1", "parent", rider_id="minor", status="no")

        week_before = dispatcher.run_once(now=STARTS_AT - timedelta(days=7))
        assert week_before.processed == 1
        assert emailed(email_sender) == ["coach"]

        # Cancel before the remaining reminders
        notifier = EventCancellationNotifier(delivery, tz=PACIFIC)
        stats = notifier.cancel("event-1", "Trail closed", "admin", now=STARTS_AT - timedelta(days=5))

        assert stats.recipients == 4
        assert emailed(email_sender) == ["admin", "adult", "coach", "parent"]
        assert pending() == []
        with get_session() as session:
            assert EventRepository(session).get("event-1").is_canceled

        # Later runs find nothing for the canceled event
        assert dispatcher.run_once(now=STARTS_AT).processed == 0
        email_sender.send.assert_not_called()

    def test_late_evening_creation_announces_next_morning(self, database, dispatcher, email_sender):
        # 22:30 in Los Angeles
        created_at = datetime(2026, 3, 11, 5, 30, tzinfo=timezone.utc)
        with get_session() as session:
            add_profile(session, "coach", roles=["roll_model"])
            event = add_event(session, "event-2", starts_at=STARTS_AT)
            schedule_event_notifications(
                session, plan_event_notifications(event, created_at, send_reminders=False, tz=PACIFIC)
            )

        assert dispatcher.run_once(now=created_at + timedelta(minutes=10)).processed == 0

        morning = dispatcher.run_once(now=datetime(2026, 3, 11, 9, 0, tzinfo=PACIFIC))
        assert morning.processed == 1
        # No linked groups: coaches and admins
        assert emailed(email_sender) == ["coach"]
