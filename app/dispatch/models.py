"""Data models for dispatch run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass
class DeliveryStats:
    """
    Delivery counters for a single notification.

    Attributes:
        notification_id: Notification that was processed
        audience_size: Raw audience before acceptance and preference filters
        recipients: Users left after both filters
        sent: Push messages accepted by a push service
        failed: Push messages that failed (including pruned subscriptions)
        removed_subscriptions: Subscriptions deleted after a 404/410
        email_sent: Fallback emails delivered
        email_failed: Fallback emails that failed or had no address
        email_skipped: Fallback users not emailed because SMTP is not configured
        duration_seconds: Time spent on this notification
        had_errors: Whether processing stopped on an unexpected error
        error_message: Message of that error
    """

    notification_id: str
    audience_size: int = 0
    recipients: int = 0
    sent: int = 0
    failed: int = 0
    removed_subscriptions: int = 0
    email_sent: int = 0
    email_failed: int = 0
    email_skipped: int = 0
    duration_seconds: float = 0.0
    had_errors: bool = False
    error_message: Optional[str] = None

    def record_error(self, error: Exception) -> None:
        self.had_errors = True
        self.error_message = f"{type(error).__name__}: {error}"


@dataclass
class DispatchRunResult:
    """
    Aggregate results from one dispatch run.

    Attributes:
        run_id: Identifier shared by every log line of the run
        as_of: The single "now" used to select due notifications
        run_started_at: Wall-clock start of the run (UTC)
        run_finished_at: Wall-clock end of the run (UTC)
        total_duration_seconds: Time for the entire run
        processed: Notifications picked up (and marked sent)
        sent, failed, removed_subscriptions: Push counters
        email_sent, email_failed, email_skipped: Email counters
        errors: Notifications whose processing hit an unexpected error
        notification_stats: Per-notification counters
        skipped: Whether the run was skipped because another run held the lock
    """

    run_id: str
    as_of: datetime
    run_started_at: datetime
    run_finished_at: datetime
    total_duration_seconds: float = 0.0
    processed: int = 0
    sent: int = 0
    failed: int = 0
    removed_subscriptions: int = 0
    email_sent: int = 0
    email_failed: int = 0
    email_skipped: int = 0
    errors: int = 0
    notification_stats: List[DeliveryStats] = field(default_factory=list)
    skipped: bool = False

    def __post_init__(self):
        """Aggregate counters from per-notification stats."""
        if self.notification_stats and self.processed == 0:
            self.processed = len(self.notification_stats)
            self.sent = sum(s.sent for s in self.notification_stats)
            self.failed = sum(s.failed for s in self.notification_stats)
            self.removed_subscriptions = sum(s.removed_subscriptions for s in self.notification_stats)
            self.email_sent = sum(s.email_sent for s in self.notification_stats)
            self.email_failed = sum(s.email_failed for s in self.notification_stats)
            self.email_skipped = sum(s.email_skipped for s in self.notification_stats)
            self.errors = sum(1 for s in self.notification_stats if s.had_errors)

        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    @property
    def had_errors(self) -> bool:
        return self.errors > 0

    def to_response(self) -> Dict[str, int]:
        """Summary returned to the trigger caller.

        Just ``{"processed": 0}`` when nothing was due.
        """
        if self.processed == 0:
            return {"processed": 0}

        return {
            "processed": self.processed,
            "sent": self.sent,
            "failed": self.failed,
            "removed_subscriptions": self.removed_subscriptions,
            "email_sent": self.email_sent,
            "email_failed": self.email_failed,
            "email_skipped": self.email_skipped,
        }
