"""Cancel an event and tell its audience right away."""

from datetime import datetime, tzinfo
from typing import Callable, ContextManager, Optional

from sqlalchemy.orm import Session

from app.domain.models import NotificationCategory, ScheduledNotification, TargetType
from app.logging import get_logger
from app.logging.context import log_context
from app.persistence.database import get_session
from app.persistence.exceptions import RecordNotFoundError
from app.persistence.repositories import EventRepository, ScheduledNotificationRepository
from app.scheduling.planner import (
    BODY_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    format_event_time,
    truncate_text,
)
from app.utils.timestamps import ensure_utc, utc_now

from .delivery import NotificationDelivery
from .exceptions import EventAlreadyCanceledError
from .models import DeliveryStats

logger = get_logger(__name__, component="cancellation")

PENDING_CATEGORIES_TO_DROP = (NotificationCategory.ANNOUNCEMENT, NotificationCategory.REMINDER)


class EventCancellationNotifier:
    """Record an event cancellation and deliver the notice immediately.

    Administrators always receive cancellation notices, including for events
    linked to groups.
    """

    def __init__(
        self,
        delivery: NotificationDelivery,
        session_factory: Callable[[], ContextManager[Session]] = get_session,
        clock: Callable[[], datetime] = utc_now,
        tz: Optional[tzinfo] = None,
    ):
        self.delivery = delivery
        self.session_factory = session_factory
        self.clock = clock
        self.tz = tz

    def cancel(
        self,
        event_id: str,
        reason: str,
        actor_id: str,
        now: Optional[datetime] = None,
    ) -> DeliveryStats:
        """Cancel ``event_id`` and notify everyone attached to it.

        Pending announcements and reminders for the event are deleted, and
        an already-sent event_update row is stored as the record of the
        notice.

        Raises:
            RecordNotFoundError: If the event does not exist
            EventAlreadyCanceledError: If the event is already canceled
        """
        canceled_at = ensure_utc(now) if now is not None else self.clock()

        with log_context(event_id=event_id, actor_id=actor_id):
            with self.session_factory() as session:
                events = EventRepository(session)
                event = events.get(event_id)
                if event is None:
                    raise RecordNotFoundError(f"Event {event_id} not found")
                if event.is_canceled:
                    raise EventAlreadyCanceledError(event_id)

                events.mark_canceled(event_id, canceled_at, reason, actor_id)

                notifications = ScheduledNotificationRepository(session)
                dropped = notifications.delete_unsent_for_event(
                    event_id, PENDING_CATEGORIES_TO_DROP
                )

                when = format_event_time(event.starts_at, self.tz)
                where = f" at {event.location}" if event.location else ""
                notice = notifications.add(
                    ScheduledNotification(
                        title=truncate_text(f"Canceled: {event.title}", TITLE_MAX_LENGTH),
                        body=truncate_text(
                            f"This event has been canceled ({when}{where}). Reason: {reason}",
                            BODY_MAX_LENGTH,
                        ),
                        url=f"/events/{event_id}",
                        scheduled_for=canceled_at,
                        target_type=TargetType.EVENT_ALL,
                        target_id=event_id,
                        category=NotificationCategory.EVENT_UPDATE,
                        event_id=event_id,
                        sent=True,
                        created_by=actor_id,
                    )
                )

            logger.info(
                f"Event {event_id} canceled; dropped {dropped} pending notification(s)",
                extra={"event": "cancellation.recorded", "dropped_notifications": dropped},
            )

            with self.session_factory() as session:
                stats = self.delivery.deliver(session, notice, include_admins=True)

            logger.info(
                f"Cancellation notice delivered for event {event_id}",
                extra={
                    "event": "cancellation.delivered",
                    "recipients": stats.recipients,
                    "sent": stats.sent,
                    "failed": stats.failed,
                    "email_sent": stats.email_sent,
                    "email_failed": stats.email_failed,
                    "email_skipped": stats.email_skipped,
                },
            )
            return stats
