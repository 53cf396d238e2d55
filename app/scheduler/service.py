"""Scheduler service for periodic dispatch runs."""

import threading
from datetime import datetime, timezone
from typing import Optional

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED,
    JobEvent,
)
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.dispatch import DispatchAbortedError, DispatchRunResult, NotificationDispatcher
from app.logging import get_logger

logger = get_logger(__name__, component="scheduler")

JOB_ID = "notification-dispatch"


class SchedulerService:
    """
    Runs the notification dispatcher every ``interval_seconds``.

    Uses BackgroundScheduler so the main thread stays free to handle signals
    and coordinate shutdown. A tick that finds the previous dispatch still
    running is dropped, and an aborted run is logged without stopping the
    schedule.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            dispatcher: Dispatcher whose run_once is called on each tick
            interval_seconds: Interval between runs in seconds
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.dispatcher = dispatcher
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.last_result: Optional[DispatchRunResult] = None
        self.aborted_runs = 0
        self.dropped_ticks = 0

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )
        self.scheduler.add_listener(
            self._on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES
        )

    def start(self) -> None:
        """
        Register the dispatch job and start the scheduler.

        The first run executes immediately. Calling start on a running
        scheduler does nothing.
        """
        if self.scheduler.running:
            logger.warning("Scheduler already running", extra={"event": "scheduler.already_running"})
            return

        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.run_dispatch,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=JOB_ID,
            name="Scheduled notification dispatch",
            replace_existing=True,
            next_run_time=next_run,
        )
        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def run_dispatch(self) -> Optional[DispatchRunResult]:
        """One scheduled tick; an aborted run is logged and None returned."""
        try:
            result = self.dispatcher.run_once()
        except DispatchAbortedError as e:
            self.aborted_runs += 1
            logger.error(
                f"Scheduled dispatch aborted: {e}",
                extra={"event": "scheduler.dispatch.aborted", "aborted_runs": self.aborted_runs},
            )
            return None

        self.last_result = result
        return result

    def _on_job_event(self, event: JobEvent) -> None:
        if event.code == EVENT_JOB_ERROR:
            logger.error(
                f"Scheduled dispatch raised: {event.exception}",
                extra={
                    "event": "scheduler.dispatch.failed",
                    "error_type": type(event.exception).__name__,
                },
            )
            return

        self.dropped_ticks += 1
        reason = "still_running" if event.code == EVENT_JOB_MAX_INSTANCES else "missed"
        logger.warning(
            "Dispatch tick dropped",
            extra={
                "event": "scheduler.dispatch.dropped",
                "reason": reason,
                "dropped_ticks": self.dropped_ticks,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Stop the scheduler.

        Args:
            wait: If True, wait for a running dispatch to finish first
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def is_running(self) -> bool:
        return self.scheduler.running
