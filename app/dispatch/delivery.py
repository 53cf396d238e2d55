"""Deliver one notification to its audience over push, then email.

Steps for a notification:

1. resolve the audience, keep accepted invitations, drop opted-out users
2. push the payload to every subscription of the remaining users
3. prune subscriptions the push service reports as gone (404/410)
4. email the users who have no subscription at all

Users who have a subscription whose push failed are not emailed. Sends run
in a bounded thread pool; worker threads only talk to the push service or
the SMTP server, every store access happens on the calling thread. Prunes
are committed as soon as the push phase ends, so a later failure cannot
undo them and no write transaction stays open during email sends.
"""

import contextvars
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Set, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.audience.preferences import PreferenceFilter
from app.audience.resolver import AudienceResolver
from app.config.models import DispatchConfig
from app.domain.models import PushSubscription, ScheduledNotification
from app.logging import get_logger
from app.notifications.email_sender import EmailSender
from app.notifications.models import NotificationTemplateError, PushSubscriptionGoneError
from app.notifications.payloads import build_email_context
from app.notifications.push_client import PushClient
from app.notifications.templates import TemplateRenderer
from app.persistence.exceptions import PersistenceError
from app.persistence.repositories import (
    AudienceRepository,
    PreferenceRepository,
    ProfileRepository,
    SubscriptionRepository,
)

from .models import DeliveryStats
from .pruner import SubscriptionPruner

logger = get_logger(__name__, component="dispatch")

T = TypeVar("T")


class NotificationDelivery:
    """Shared delivery path for scheduled and immediate notifications.

    Args:
        dispatch_config: Lookup batch size and send concurrency
        email_sender: Fallback channel sender
        base_url: Public base URL used for email links
        allowed_hosts: Hosts absolute links may point at
        push_client: Push sender, or None when VAPID is not configured
        template_renderer: Email renderer (creates default if None)
        include_admins: Default for folding administrators into grouped
            event audiences
    """

    def __init__(
        self,
        dispatch_config: DispatchConfig,
        email_sender: EmailSender,
        base_url: str,
        allowed_hosts: Set[str],
        push_client: Optional[PushClient] = None,
        template_renderer: Optional[TemplateRenderer] = None,
        include_admins: bool = False,
    ):
        self.dispatch_config = dispatch_config
        self.email_sender = email_sender
        self.base_url = base_url
        self.allowed_hosts = allowed_hosts
        self.push_client = push_client
        self.template_renderer = template_renderer or TemplateRenderer()
        self.include_admins = include_admins

    def deliver(
        self,
        session: Session,
        notification: ScheduledNotification,
        include_admins: Optional[bool] = None,
        stats: Optional[DeliveryStats] = None,
    ) -> DeliveryStats:
        """Resolve, filter and deliver one notification.

        Audience or subscription lookup failures propagate; failures of
        individual sends are counted in the returned stats. Pass ``stats``
        to keep the counters gathered before such a failure.
        """
        if stats is None:
            stats = DeliveryStats(notification_id=notification.id)
        batch_size = self.dispatch_config.lookup_batch_size

        resolver = AudienceResolver(
            AudienceRepository(session, batch_size), include_admins=self.include_admins
        )
        audience = resolver.resolve(
            notification.target_type, notification.target_id, include_admins
        )
        accepted = resolver.filter_accepted(audience)
        recipients = PreferenceFilter(PreferenceRepository(session), batch_size).filter(
            accepted, notification.category
        )
        stats.audience_size = len(audience)
        stats.recipients = len(recipients)

        logger.info(
            f"Notification audience resolved: {len(recipients)} recipient(s) of {len(audience)}",
            extra={
                "event": "dispatch.audience.resolved",
                "audience_size": len(audience),
                "accepted": len(accepted),
                "recipients": len(recipients),
            },
        )

        if not recipients:
            return stats

        subscription_repo = SubscriptionRepository(session)
        subscriptions = subscription_repo.get_for_users(recipients, batch_size)

        reached, gone = self._send_push(subscriptions, notification, stats)
        if gone:
            self._prune(session, SubscriptionPruner(subscription_repo), gone, stats)

        subscribed = {subscription.user_id for subscription in subscriptions}
        fallback = recipients - reached - subscribed
        self._send_email(session, fallback, notification, stats)

        return stats

    def _run_bounded(
        self, func: Callable[[T], object], items: List[T]
    ) -> List[Tuple[T, Future]]:
        """Run ``func`` over ``items`` with at most max_concurrent_sends in flight."""
        workers = max(1, min(self.dispatch_config.max_concurrent_sends, len(items)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify-send") as pool:
            # One context copy per task: a Context cannot be entered by two threads
            return [
                (item, pool.submit(contextvars.copy_context().run, func, item)) for item in items
            ]

    def _send_push(
        self,
        subscriptions: List[PushSubscription],
        notification: ScheduledNotification,
        stats: DeliveryStats,
    ) -> Tuple[Set[str], List[PushSubscription]]:
        """Push to every subscription.

        Returns:
            Tuple of (ids of users reached, subscriptions reported gone)
        """
        reached: Set[str] = set()
        gone: List[PushSubscription] = []
        if not subscriptions:
            return reached, gone

        if self.push_client is None:
            stats.failed += len(subscriptions)
            logger.warning(
                f"Push not configured; {len(subscriptions)} subscription(s) not notified",
                extra={"event": "dispatch.push.unconfigured", "subscriptions": len(subscriptions)},
            )
            return reached, gone

        payload = notification.push_payload()
        outcomes = self._run_bounded(
            lambda subscription: self.push_client.send(subscription, payload), subscriptions
        )

        for subscription, future in outcomes:
            try:
                future.result()
                stats.sent += 1
                reached.add(subscription.user_id)
            except PushSubscriptionGoneError as e:
                stats.failed += 1
                gone.append(subscription)
                logger.info(
                    f"Push subscription gone (status {e.status_code}): {subscription.short_endpoint()}",
                    extra={
                        "event": "dispatch.push.gone",
                        "subscription_id": subscription.id,
                        "status_code": e.status_code,
                    },
                )
            except Exception as e:
                stats.failed += 1
                logger.warning(
                    f"Push delivery failed for {subscription.short_endpoint()}: {e}",
                    extra={
                        "event": "dispatch.push.failed",
                        "subscription_id": subscription.id,
                        "error_type": type(e).__name__,
                    },
                )

        return reached, gone

    def _prune(
        self,
        session: Session,
        pruner: SubscriptionPruner,
        gone: List[PushSubscription],
        stats: DeliveryStats,
    ) -> None:
        """Delete gone subscriptions and commit before any email is sent."""
        for subscription in gone:
            try:
                if pruner.prune(subscription.id):
                    stats.removed_subscriptions += 1
            except PersistenceError as e:
                logger.error(
                    f"Failed to prune subscription {subscription.id}: {e}",
                    extra={"event": "dispatch.subscription.prune_failed"},
                )

        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            stats.removed_subscriptions = 0
            logger.error(
                f"Failed to commit pruned subscriptions: {e}",
                extra={"event": "dispatch.subscription.prune_failed"},
            )

    def _send_email(
        self,
        session: Session,
        fallback: Iterable[str],
        notification: ScheduledNotification,
        stats: DeliveryStats,
    ) -> None:
        fallback = sorted(fallback)
        if not fallback:
            return

        if not self.email_sender.is_configured():
            stats.email_skipped += len(fallback)
            logger.info(
                f"Email not configured; skipped {len(fallback)} fallback recipient(s)",
                extra={"event": "dispatch.email.skipped", "count": len(fallback)},
            )
            return

        emails = ProfileRepository(session).get_emails(
            fallback, self.dispatch_config.lookup_batch_size
        )
        addressed = [(user_id, emails[user_id]) for user_id in fallback if emails.get(user_id)]
        missing = len(fallback) - len(addressed)
        if missing:
            stats.email_failed += missing
            logger.warning(
                f"{missing} fallback recipient(s) have no email address",
                extra={"event": "dispatch.email.missing_address", "count": missing},
            )
        if not addressed:
            return

        try:
            content = self.template_renderer.render(
                build_email_context(notification, self.base_url, self.allowed_hosts)
            )
        except NotificationTemplateError as e:
            stats.email_failed += len(addressed)
            stats.record_error(e)
            return

        outcomes = self._run_bounded(
            lambda recipient: self.email_sender.send(
                recipient[1], content.subject, content.text_body, content.html_body
            ),
            addressed,
        )

        for (user_id, _address), future in outcomes:
            try:
                result = future.result()
            except Exception as e:
                stats.email_failed += 1
                logger.warning(
                    f"Email delivery to user {user_id} failed: {e}",
                    extra={"event": "dispatch.email.failed", "error_type": type(e).__name__},
                )
                continue

            if result.is_success():
                stats.email_sent += 1
            else:
                stats.email_failed += 1
                logger.warning(
                    f"Email delivery to user {user_id} failed: {result.error}",
                    extra={"event": "dispatch.email.failed", "attempts": result.attempts},
                )
