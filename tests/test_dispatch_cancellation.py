"""Tests for event cancellation notices."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.dispatch.cancellation import EventCancellationNotifier
from app.dispatch.delivery import NotificationDelivery
from app.dispatch.exceptions import EventAlreadyCanceledError
from app.domain.models import NotificationCategory, TargetType
from app.persistence.database import get_session
from app.persistence.exceptions import RecordNotFoundError
from app.persistence.repositories import EventRepository, ScheduledNotificationRepository
from app.scheduling.planner import BODY_MAX_LENGTH, TITLE_MAX_LENGTH
from tests.helpers import (
    add_coach,
    add_event,
    add_group,
    add_notification,
    add_profile,
    add_subscription,
)

NOW = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)
STARTS_AT = datetime(2026, 3, 20, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def club(database):
    """event-1 linked to group-a, with one pending announcement and reminder."""
    with get_session() as session:
        add_group(session, "group-a")
        add_profile(session, "coach", roles=["roll_model"])
        add_profile(session, "adult", roles=["rider"], group_id="group-a")
        add_profile(session, "admin", roles=["admin"])
        add_profile(session, "outsider", roles=["parent"])
        add_coach(session, "coach", "group-a")
        add_subscription(session, "coach")
        add_event(session, "event-1", starts_at=STARTS_AT, group_ids=["group-a"])
        for category, target_type in (
            (NotificationCategory.ANNOUNCEMENT, TargetType.EVENT_ALL),
            (NotificationCategory.REMINDER, TargetType.EVENT_NOT_RSVPD),
            (NotificationCategory.EVENT_UPDATE, TargetType.EVENT_RSVPD),
        ):
            add_notification(
                session,
                NOW + timedelta(days=1),
                target_type=target_type,
                target_id="event-1",
                category=category,
                event_id="event-1",
            )


@pytest.fixture
def notifier(club, dispatch_config, email_sender, push_client):
    delivery = NotificationDelivery(
        dispatch_config, email_sender, "https://app.everybodybike.org", set(), push_client
    )
    return EventCancellationNotifier(delivery, tz=ZoneInfo("America/Los_Angeles"))


def stored_for_event():
    with get_session() as session:
        return ScheduledNotificationRepository(session).list_for_event("event-1")


class TestEventCancellation:
    def test_event_marked_canceled(self, notifier):
        notifier.cancel("event-1", "Trail closed", "admin", now=NOW)

        with get_session() as session:
            event = EventRepository(session).get("event-1")
        assert event.canceled_at == NOW
        assert event.canceled_reason == "Trail closed"
        assert event.canceled_by == "admin"

    def test_pending_announcement_and_reminders_dropped(self, notifier):
        notifier.cancel("event-1", "Trail closed", "admin", now=NOW)

        stored = stored_for_event()
        categories = sorted(n.category.value for n in stored)
        assert categories == ["event_update", "event_update"]
        assert [n.sent for n in stored if n.target_type is TargetType.EVENT_RSVPD] == [False]

    def test_notice_recorded_as_sent(self, notifier):
        notifier.cancel("event-1", "Trail closed", "admin", now=NOW)

        notice = next(n for n in stored_for_event() if n.target_type is TargetType.EVENT_ALL)
        assert notice.sent is True
        assert notice.scheduled_for == NOW
        assert notice.created_by == "admin"
        assert notice.title == "Canceled: Saturday Ride"
        assert notice.body == (
            "This event has been canceled (Fri, Mar 20, 9:00 AM at Trailhead). Reason: Trail closed"
        )
        assert notice.url == "/events/event-1"

    def test_long_title_and_reason_clipped(self, notifier):
        with get_session() as session:
            add_event(session, "event-2", starts_at=STARTS_AT, title="Ride " * 40)

        notifier.cancel("event-2", "x" * 600, "admin", now=NOW)

        with get_session() as session:
            (notice,) = ScheduledNotificationRepository(session).list_for_event("event-2")
        assert len(notice.title) == TITLE_MAX_LENGTH
        assert notice.title.startswith("Canceled: Ride Ride")
        assert notice.title.endswith("...")
        assert len(notice.body) <= BODY_MAX_LENGTH
        assert notice.body.endswith("...")

    def test_audience_includes_admins(self, notifier, push_client, email_sender):
        stats = notifier.cancel("event-1", "Trail closed", "admin", now=NOW)

        assert stats.recipients == 3
        assert stats.sent == 1
        assert [c.args[0].user_id for c in push_client.send.call_args_list] == ["coach"]
        assert sorted(c.args[0] for c in email_sender.send.call_args_list) == [
            "admin@everybodybike.org", "adult@everybodybike.org",
        ]

    def test_notice_not_picked_up_by_dispatcher(self, notifier):
        notifier.cancel("event-1", "Trail closed", "admin", now=NOW)

        with get_session() as session:
            due = ScheduledNotificationRepository(session).get_due(NOW, 25)
        assert due == []

    def test_unknown_event(self, notifier):
        with pytest.raises(RecordNotFoundError):
            notifier.cancel("missing", "n/a", "admin", now=NOW)

    def test_second_cancellation_rejected(self, notifier, push_client):
        notifier.cancel("event-1", "Trail closed", "admin", now=NOW)
        push_client.send.reset_mock()

        with pytest.raises(EventAlreadyCanceledError):
            notifier.cancel("event-1", "Again", "admin", now=NOW)

        push_client.send.assert_not_called()
