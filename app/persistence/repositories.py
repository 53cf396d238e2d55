"""Data access layer (repositories) for persistence operations.

Repositories wrap a session, return domain models or plain id sets, and turn
SQLAlchemy failures into PersistenceError. Every "id in set" query goes
through the batch cursor so no single statement exceeds ``batch_size`` ids.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.models import (
    Event,
    InviteStatus,
    NotificationCategory,
    NotificationPreferences,
    PushSubscription,
    Role,
    ScheduledNotification,
)
from app.utils.batching import DEFAULT_BATCH_SIZE, batched_lookup
from app.utils.timestamps import to_store_timestamp

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    CoachAssignmentModel,
    EventGroupModel,
    EventModel,
    NotificationPreferenceModel,
    ProfileModel,
    PushSubscriptionModel,
    RiderModel,
    RiderParentModel,
    RsvpModel,
    ScheduledNotificationModel,
    UserRoleModel,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RsvpRecord:
    """One RSVP row as seen by audience resolution."""

    user_id: str
    rider_id: Optional[str]
    status: str


class ScheduledNotificationRepository:
    """Repository for scheduled notification rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, notification_id: str) -> Optional[ScheduledNotification]:
        """Retrieve a notification by id, or None."""
        try:
            model = self.session.get(ScheduledNotificationModel, notification_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving notification {notification_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve notification: {e}") from e

    def get_due(self, now: datetime, limit: int) -> List[ScheduledNotification]:
        """Unsent notifications with ``scheduled_for <= now``, oldest first.

        Args:
            now: Cutoff timestamp captured once per run
            limit: Maximum rows returned

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(ScheduledNotificationModel)
                .where(
                    ScheduledNotificationModel.sent.is_(False),
                    ScheduledNotificationModel.scheduled_for <= to_store_timestamp(now),
                )
                .order_by(
                    ScheduledNotificationModel.scheduled_for.asc(),
                    ScheduledNotificationModel.id.asc(),
                )
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving due notifications: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve due notifications: {e}") from e

    def list_for_event(self, event_id: str) -> List[ScheduledNotification]:
        """All notifications linked to an event, ordered by schedule time."""
        try:
            stmt = (
                select(ScheduledNotificationModel)
                .where(ScheduledNotificationModel.event_id == event_id)
                .order_by(ScheduledNotificationModel.scheduled_for.asc())
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error listing notifications for event {event_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list event notifications: {e}") from e

    def add(self, notification: ScheduledNotification) -> ScheduledNotification:
        """Insert a new notification row.

        Raises:
            DataIntegrityError: If the id already exists
            PersistenceError: If database error occurs
        """
        try:
            model = ScheduledNotificationModel.from_domain(notification)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error adding notification {notification.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add notification due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding notification {notification.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add notification: {e}") from e

    def add_many(self, notifications: Iterable[ScheduledNotification]) -> List[ScheduledNotification]:
        """Insert several notifications in the current transaction."""
        return [self.add(notification) for notification in notifications]

    def mark_sent(self, notification_id: str) -> None:
        """Flip ``sent`` to true.

        Raises:
            RecordNotFoundError: If the notification does not exist
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(ScheduledNotificationModel)
                .where(ScheduledNotificationModel.id == notification_id)
                .values(sent=True)
            )
            result = self.session.execute(stmt)
            self.session.flush()

            if result.rowcount == 0:
                raise RecordNotFoundError(f"Notification {notification_id} not found")

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error marking notification {notification_id} sent: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark notification sent: {e}") from e

    def has_unsent_announcement(self, event_id: str) -> bool:
        """Whether the event already has a pending announcement."""
        try:
            stmt = (
                select(ScheduledNotificationModel.id)
                .where(
                    ScheduledNotificationModel.event_id == event_id,
                    ScheduledNotificationModel.category == NotificationCategory.ANNOUNCEMENT.value,
                    ScheduledNotificationModel.sent.is_(False),
                )
                .limit(1)
            )
            return self.session.execute(stmt).first() is not None

        except SQLAlchemyError as e:
            logger.error(f"Error checking announcements for event {event_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check pending announcement: {e}") from e

    def delete_unsent_for_event(
        self, event_id: str, categories: Iterable[NotificationCategory]
    ) -> int:
        """Delete pending notifications of the given categories for an event.

        Returns:
            Number of rows deleted
        """
        category_values = [NotificationCategory(category).value for category in categories]
        try:
            stmt = delete(ScheduledNotificationModel).where(
                ScheduledNotificationModel.event_id == event_id,
                ScheduledNotificationModel.sent.is_(False),
                ScheduledNotificationModel.category.in_(category_values),
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error deleting pending notifications for event {event_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete pending notifications: {e}") from e


class SubscriptionRepository:
    """Repository for push subscriptions."""

    def __init__(self, session: Session):
        self.session = session

    def get_for_users(
        self, user_ids: Iterable[str], batch_size: int = DEFAULT_BATCH_SIZE
    ) -> List[PushSubscription]:
        """All subscriptions owned by any of ``user_ids``."""

        def lookup(batch: List[str]) -> List[PushSubscription]:
            stmt = (
                select(PushSubscriptionModel)
                .where(PushSubscriptionModel.user_id.in_(batch))
                .order_by(PushSubscriptionModel.user_id, PushSubscriptionModel.id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        try:
            return batched_lookup(user_ids, lookup, batch_size)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving push subscriptions: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve push subscriptions: {e}") from e

    def add(self, subscription: PushSubscription) -> PushSubscription:
        """Register a subscription.

        Raises:
            DataIntegrityError: If the endpoint is already registered
        """
        try:
            model = PushSubscriptionModel.from_domain(subscription)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error adding subscription {subscription.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add subscription due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding subscription {subscription.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add subscription: {e}") from e

    def delete(self, subscription_id: str) -> bool:
        """Delete a subscription by id.

        Returns:
            True if a row was deleted, False if it was already gone
        """
        try:
            stmt = delete(PushSubscriptionModel).where(PushSubscriptionModel.id == subscription_id)
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount > 0

        except SQLAlchemyError as e:
            logger.error(f"Error deleting subscription {subscription_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete subscription: {e}") from e


class PreferenceRepository:
    """Repository for per-user notification preferences."""

    def __init__(self, session: Session):
        self.session = session

    def get_for_users(
        self, user_ids: Iterable[str], batch_size: int = DEFAULT_BATCH_SIZE
    ) -> Dict[str, NotificationPreferences]:
        """Preference rows keyed by user id; users without a row are absent."""

        def lookup(batch: List[str]) -> List[NotificationPreferences]:
            stmt = select(NotificationPreferenceModel).where(
                NotificationPreferenceModel.user_id.in_(batch)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        try:
            rows = batched_lookup(user_ids, lookup, batch_size)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving notification preferences: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve notification preferences: {e}") from e

        return {row.user_id: row for row in rows}

    def upsert(self, preferences: NotificationPreferences) -> NotificationPreferences:
        """Insert or replace a user's preference row."""
        try:
            existing = self.session.get(NotificationPreferenceModel, preferences.user_id)
            if existing is None:
                existing = NotificationPreferenceModel(user_id=preferences.user_id)
                self.session.add(existing)

            existing.new_event = preferences.new_event
            existing.rsvp_reminder = preferences.rsvp_reminder
            existing.event_update = preferences.event_update
            existing.custom_message = preferences.custom_message

            self.session.flush()
            return existing.to_domain()

        except SQLAlchemyError as e:
            logger.error(f"Error saving preferences for {preferences.user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save notification preferences: {e}") from e


class ProfileRepository:
    """Repository for member profile lookups used during delivery."""

    def __init__(self, session: Session):
        self.session = session

    def get_emails(
        self, user_ids: Iterable[str], batch_size: int = DEFAULT_BATCH_SIZE
    ) -> Dict[str, Optional[str]]:
        """Email address per user id (None where the profile has none)."""

        def lookup(batch: List[str]):
            stmt = select(ProfileModel.id, ProfileModel.email).where(ProfileModel.id.in_(batch))
            return self.session.execute(stmt).all()

        try:
            rows = batched_lookup(user_ids, lookup, batch_size)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving profile emails: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve profile emails: {e}") from e

        return {row.id: (row.email or None) for row in rows}


class AudienceRepository:
    """Read-only relationship queries used to resolve notification audiences."""

    def __init__(self, session: Session, batch_size: int = DEFAULT_BATCH_SIZE):
        self.session = session
        self.batch_size = batch_size

    def _ids_in(self, column, key_column, keys: Iterable[str]) -> Set[str]:
        """Distinct ``column`` values for rows whose ``key_column`` is in ``keys``."""

        def lookup(batch: List[str]):
            stmt = select(column).where(key_column.in_(batch)).distinct()
            return self.session.execute(stmt).scalars().all()

        try:
            return set(batched_lookup(keys, lookup, self.batch_size))
        except SQLAlchemyError as e:
            logger.error(f"Error querying {column}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to query audience relationships: {e}") from e

    def all_profile_ids(self) -> Set[str]:
        """Every profile id."""
        try:
            return set(self.session.execute(select(ProfileModel.id)).scalars())
        except SQLAlchemyError as e:
            logger.error(f"Error listing profiles: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list profiles: {e}") from e

    def accepted_ids(self, user_ids: Iterable[str]) -> Set[str]:
        """Subset of ``user_ids`` whose invitation is accepted."""

        def lookup(batch: List[str]):
            stmt = select(ProfileModel.id).where(
                ProfileModel.id.in_(batch),
                ProfileModel.invite_status == InviteStatus.ACCEPTED.value,
            )
            return self.session.execute(stmt).scalars().all()

        try:
            return set(batched_lookup(user_ids, lookup, self.batch_size))
        except SQLAlchemyError as e:
            logger.error(f"Error filtering accepted profiles: {e}", exc_info=True)
            raise PersistenceError(f"Failed to filter accepted profiles: {e}") from e

    def role_holders(self, roles: Iterable[Role]) -> Set[str]:
        """Users holding any of ``roles``."""
        role_values = [Role(role).value for role in roles]
        return self._ids_in(UserRoleModel.user_id, UserRoleModel.role, role_values)

    def adult_members(self, group_ids: Iterable[str]) -> Set[str]:
        """Profiles whose own home group is one of ``group_ids``."""
        return self._ids_in(ProfileModel.id, ProfileModel.rider_group_id, group_ids)

    def coaches(self, group_ids: Iterable[str]) -> Set[str]:
        """Users assigned to coach any of ``group_ids``."""
        return self._ids_in(CoachAssignmentModel.coach_id, CoachAssignmentModel.group_id, group_ids)

    def minors_in(self, group_ids: Iterable[str]) -> Set[str]:
        """Rider ids whose home group is one of ``group_ids``."""
        return self._ids_in(RiderModel.id, RiderModel.group_id, group_ids)

    def guardians_of(self, rider_ids: Iterable[str]) -> Set[str]:
        """Guardians linked to any of ``rider_ids``."""
        return self._ids_in(RiderParentModel.parent_id, RiderParentModel.rider_id, rider_ids)

    def event_group_ids(self, event_id: str) -> Set[str]:
        """Groups linked to an event."""
        return self._ids_in(EventGroupModel.group_id, EventGroupModel.event_id, [event_id])

    def event_rsvps(self, event_id: str) -> List[RsvpRecord]:
        """Every RSVP row for an event."""
        try:
            stmt = select(RsvpModel.user_id, RsvpModel.rider_id, RsvpModel.status).where(
                RsvpModel.event_id == event_id
            )
            return [
                RsvpRecord(user_id=row.user_id, rider_id=row.rider_id, status=row.status)
                for row in self.session.execute(stmt)
            ]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving RSVPs for event {event_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve RSVPs: {e}") from e


class EventRepository:
    """Repository for the event fields this subsystem reads and updates."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, event_id: str) -> Optional[Event]:
        """Retrieve an event by id, or None."""
        try:
            model = self.session.get(EventModel, event_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving event {event_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve event: {e}") from e

    def add(self, event: Event) -> Event:
        """Insert an event row."""
        try:
            model = EventModel.from_domain(event)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error adding event {event.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add event due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding event {event.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add event: {e}") from e

    def mark_canceled(
        self,
        event_id: str,
        canceled_at: datetime,
        reason: Optional[str],
        canceled_by: Optional[str],
    ) -> Event:
        """Record cancellation fields on an event.

        Raises:
            RecordNotFoundError: If the event does not exist
        """
        try:
            model = self.session.get(EventModel, event_id)
            if model is None:
                raise RecordNotFoundError(f"Event {event_id} not found")

            model.canceled_at = to_store_timestamp(canceled_at)
            model.canceled_reason = reason
            model.canceled_by = canceled_by
            self.session.flush()
            return model.to_domain()

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error canceling event {event_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to cancel event: {e}") from e
