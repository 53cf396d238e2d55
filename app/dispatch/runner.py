"""Dispatch orchestration: deliver every due notification once."""

import threading
import time
from datetime import datetime
from typing import Callable, ContextManager, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from app.config.models import DispatchConfig
from app.domain.models import ScheduledNotification
from app.logging import get_logger
from app.logging.context import log_context
from app.persistence.database import get_session
from app.persistence.exceptions import PersistenceError
from app.persistence.repositories import ScheduledNotificationRepository
from app.utils.timestamps import ensure_utc, format_timestamp_for_log, utc_now

from .delivery import NotificationDelivery
from .exceptions import DispatchAbortedError
from .models import DeliveryStats, DispatchRunResult

logger = get_logger(__name__, component="dispatch")


class NotificationDispatcher:
    """
    Runs one dispatch pass over due notifications.

    Each run selects unsent notifications whose time has come (oldest first,
    at most ``dispatch.batch_size``), delivers them one at a time and marks
    each as sent after a single attempt, whatever the outcome.
    """

    def __init__(
        self,
        dispatch_config: DispatchConfig,
        delivery: NotificationDelivery,
        session_factory: Callable[[], ContextManager[Session]] = get_session,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the dispatcher.

        Args:
            dispatch_config: Batch size and concurrency settings
            delivery: Shared per-notification delivery path
            session_factory: Context manager yielding a committed-on-exit session
            clock: Source of "now" when a run is not given one
        """
        self.dispatch_config = dispatch_config
        self.delivery = delivery
        self.session_factory = session_factory
        self.clock = clock
        self._lock = threading.Lock()

    def run_once(self, now: Optional[datetime] = None) -> DispatchRunResult:
        """
        Deliver every notification due at ``now``.

        ``now`` is captured once and used for the whole run. Overlapping runs
        in one process are skipped rather than queued.

        Returns:
            DispatchRunResult with aggregate and per-notification counters

        Raises:
            DispatchAbortedError: If due notifications cannot be fetched; no
                notification is processed in that case
        """
        as_of = ensure_utc(now) if now is not None else self.clock()
        run_started_at = utc_now()
        run_id = uuid4().hex

        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Dispatch run skipped: previous run still in progress",
                    extra={"event": "dispatch.run.skipped", "reason": "lock_held"},
                )
            return DispatchRunResult(
                run_id=run_id,
                as_of=as_of,
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                skipped=True,
            )

        try:
            with log_context(run_id=run_id):
                logger.info(
                    "Dispatch run started",
                    extra={
                        "event": "dispatch.run.started",
                        "as_of": format_timestamp_for_log(as_of),
                        "batch_size": self.dispatch_config.batch_size,
                    },
                )

                due = self._fetch_due(as_of)
                notification_stats: List[DeliveryStats] = [
                    self._process_notification(notification) for notification in due
                ]

                result = DispatchRunResult(
                    run_id=run_id,
                    as_of=as_of,
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    notification_stats=notification_stats,
                )

                logger.info(
                    "Dispatch run completed",
                    extra={
                        "event": "dispatch.run.completed",
                        "duration_ms": int(result.total_duration_seconds * 1000),
                        **result.to_response(),
                        "errors": result.errors,
                    },
                )
                return result

        finally:
            self._lock.release()

    def _fetch_due(self, as_of: datetime) -> List[ScheduledNotification]:
        try:
            with self.session_factory() as session:
                due = ScheduledNotificationRepository(session).get_due(
                    as_of, self.dispatch_config.batch_size
                )
        except PersistenceError as e:
            logger.error(
                f"Failed to fetch due notifications: {e}",
                exc_info=True,
                extra={"event": "dispatch.run.aborted"},
            )
            raise DispatchAbortedError(f"Failed to fetch due notifications: {e}") from e

        logger.info(
            f"Found {len(due)} due notification(s)",
            extra={"event": "dispatch.notifications.due", "count": len(due)},
        )
        return due

    def _process_notification(self, notification: ScheduledNotification) -> DeliveryStats:
        """Deliver one notification and mark it sent; never raises."""
        started = time.monotonic()

        with log_context(
            notification_id=notification.id,
            target_type=notification.target_type.value,
            category=notification.category.value,
        ):
            # Counters gathered before a failure are kept
            stats = DeliveryStats(notification_id=notification.id)
            try:
                with self.session_factory() as session:
                    self.delivery.deliver(session, notification, stats=stats)
            except Exception as e:
                stats.record_error(e)
                logger.error(
                    f"Failed to deliver notification {notification.id}: {e}",
                    exc_info=True,
                    extra={"event": "dispatch.notification.failed", "error_type": type(e).__name__},
                )

            # Marked even after an error: each notification gets one attempt
            try:
                with self.session_factory() as session:
                    ScheduledNotificationRepository(session).mark_sent(notification.id)
            except PersistenceError as e:
                stats.record_error(e)
                logger.error(
                    f"Failed to mark notification {notification.id} sent: {e}",
                    extra={"event": "dispatch.notification.mark_failed"},
                )

            stats.duration_seconds = time.monotonic() - started

            logger.info(
                f"Notification {notification.id} processed",
                extra={
                    "event": "dispatch.notification.completed",
                    "recipients": stats.recipients,
                    "sent": stats.sent,
                    "failed": stats.failed,
                    "removed_subscriptions": stats.removed_subscriptions,
                    "email_sent": stats.email_sent,
                    "email_failed": stats.email_failed,
                    "email_skipped": stats.email_skipped,
                    "had_errors": stats.had_errors,
                    "duration_ms": int(stats.duration_seconds * 1000),
                },
            )
            return stats
