"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the club data the dispatcher
reads (profiles, roles, groups, riders, guardianship, coaching, events, RSVPs)
and the notification tables it owns, plus conversions to domain models.

Timestamps are stored as fixed-width ISO 8601 UTC strings so that string
comparison in SQL matches chronological order.
"""

import logging

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text, UniqueConstraint, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from app.domain.models import (
    Event,
    NotificationPreferences,
    PushSubscription,
    ScheduledNotification,
)
from app.utils.timestamps import from_store_timestamp, to_store_timestamp

logger = logging.getLogger(__name__)

# Create base class for ORM models
Base = declarative_base()


class ProfileModel(Base):
    """ORM model for profiles table (one row per member account)."""

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=True)
    invite_status = Column(String(20), nullable=False, default="pending")
    # Group a rider profile rides in (riders with their own account)
    rider_group_id = Column(String(64), ForeignKey("groups.id"), nullable=True)

    __table_args__ = (Index("idx_profiles_rider_group", "rider_group_id"),)


class UserRoleModel(Base):
    """ORM model for user_roles table."""

    __tablename__ = "user_roles"

    user_id = Column(String(64), ForeignKey("profiles.id"), primary_key=True, nullable=False)
    role = Column(String(20), primary_key=True, nullable=False)

    __table_args__ = (Index("idx_user_roles_role", "role"),)


class GroupModel(Base):
    """ORM model for groups table."""

    __tablename__ = "groups"

    id = Column(String(64), primary_key=True, nullable=False)
    name = Column(String(255), nullable=False)


class RiderModel(Base):
    """ORM model for riders table (minors managed by guardians)."""

    __tablename__ = "riders"

    id = Column(String(64), primary_key=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    group_id = Column(String(64), ForeignKey("groups.id"), nullable=True)

    __table_args__ = (Index("idx_riders_group", "group_id"),)


class RiderParentModel(Base):
    """ORM model for rider_parents table (guardianship links)."""

    __tablename__ = "rider_parents"

    rider_id = Column(String(64), ForeignKey("riders.id"), primary_key=True, nullable=False)
    parent_id = Column(String(64), ForeignKey("profiles.id"), primary_key=True, nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("idx_rider_parents_parent", "parent_id"),)


class CoachAssignmentModel(Base):
    """ORM model for coach_assignments table."""

    __tablename__ = "coach_assignments"

    coach_id = Column(String(64), ForeignKey("profiles.id"), primary_key=True, nullable=False)
    group_id = Column(String(64), ForeignKey("groups.id"), primary_key=True, nullable=False)

    __table_args__ = (Index("idx_coach_assignments_group", "group_id"),)


class EventModel(Base):
    """ORM model for events table."""

    __tablename__ = "events"

    id = Column(String(64), primary_key=True, nullable=False)
    title = Column(Text, nullable=False)
    starts_at = Column(String(50), nullable=False)
    location = Column(Text, nullable=True)
    canceled_at = Column(String(50), nullable=True)
    canceled_reason = Column(Text, nullable=True)
    canceled_by = Column(String(64), nullable=True)

    def to_domain(self) -> Event:
        """Convert ORM model to domain model."""
        return Event(
            id=self.id,
            title=self.title,
            starts_at=from_store_timestamp(self.starts_at),
            location=self.location,
            canceled_at=from_store_timestamp(self.canceled_at),
            canceled_reason=self.canceled_reason,
            canceled_by=self.canceled_by,
        )

    @classmethod
    def from_domain(cls, event: Event) -> "EventModel":
        """Create ORM model from domain model."""
        return cls(
            id=event.id,
            title=event.title,
            starts_at=to_store_timestamp(event.starts_at),
            location=event.location,
            canceled_at=to_store_timestamp(event.canceled_at),
            canceled_reason=event.canceled_reason,
            canceled_by=event.canceled_by,
        )


class EventGroupModel(Base):
    """ORM model for event_groups table (groups an event is linked to)."""

    __tablename__ = "event_groups"

    event_id = Column(String(64), ForeignKey("events.id"), primary_key=True, nullable=False)
    group_id = Column(String(64), ForeignKey("groups.id"), primary_key=True, nullable=False)


class RsvpModel(Base):
    """ORM model for rsvps table.

    ``rider_id`` is set when a guardian answered on behalf of a minor;
    otherwise the RSVP belongs to ``user_id`` personally.
    """

    __tablename__ = "rsvps"

    id = Column(String(64), primary_key=True, nullable=False)
    event_id = Column(String(64), ForeignKey("events.id"), nullable=False)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    rider_id = Column(String(64), ForeignKey("riders.id"), nullable=True)
    status = Column(String(20), nullable=False)
    assigned_group_id = Column(String(64), ForeignKey("groups.id"), nullable=True)

    __table_args__ = (Index("idx_rsvps_event", "event_id"),)


class ScheduledNotificationModel(Base):
    """ORM model for scheduled_notifications table."""

    __tablename__ = "scheduled_notifications"

    id = Column(String(64), primary_key=True, nullable=False)
    title = Column(String(120), nullable=False)
    body = Column(String(500), nullable=False)
    url = Column(Text, nullable=True)
    scheduled_for = Column(String(50), nullable=False)
    target_type = Column(String(20), nullable=False)
    target_id = Column(String(64), nullable=True)
    category = Column(String(20), nullable=False, default="custom_message")
    event_id = Column(String(64), ForeignKey("events.id"), nullable=True)
    sent = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(64), nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_scheduled_notifications_due", "sent", "scheduled_for"),
        Index("idx_scheduled_notifications_event", "event_id", "category"),
    )

    def to_domain(self) -> ScheduledNotification:
        """Convert ORM model to domain model."""
        return ScheduledNotification(
            id=self.id,
            title=self.title,
            body=self.body,
            url=self.url,
            scheduled_for=from_store_timestamp(self.scheduled_for),
            target_type=self.target_type,
            target_id=self.target_id,
            category=self.category,
            event_id=self.event_id,
            sent=bool(self.sent),
            created_by=self.created_by,
            created_at=from_store_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, notification: ScheduledNotification) -> "ScheduledNotificationModel":
        """Create ORM model from domain model."""
        return cls(
            id=notification.id,
            title=notification.title,
            body=notification.body,
            url=notification.url,
            scheduled_for=to_store_timestamp(notification.scheduled_for),
            target_type=notification.target_type.value,
            target_id=notification.target_id,
            category=notification.category.value,
            event_id=notification.event_id,
            sent=notification.sent,
            created_by=notification.created_by,
            created_at=to_store_timestamp(notification.created_at),
        )


class PushSubscriptionModel(Base):
    """ORM model for push_subscriptions table."""

    __tablename__ = "push_subscriptions"

    id = Column(String(64), primary_key=True, nullable=False)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    endpoint = Column(Text, nullable=False)
    keys_p256dh = Column(Text, nullable=False)
    keys_auth = Column(Text, nullable=False)
    user_agent = Column(Text, nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("endpoint", name="uq_push_subscriptions_endpoint"),
        Index("idx_push_subscriptions_user", "user_id"),
    )

    def to_domain(self) -> PushSubscription:
        """Convert ORM model to domain model."""
        return PushSubscription(
            id=self.id,
            user_id=self.user_id,
            endpoint=self.endpoint,
            keys_p256dh=self.keys_p256dh,
            keys_auth=self.keys_auth,
            user_agent=self.user_agent,
            created_at=from_store_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, subscription: PushSubscription) -> "PushSubscriptionModel":
        """Create ORM model from domain model."""
        return cls(
            id=subscription.id,
            user_id=subscription.user_id,
            endpoint=subscription.endpoint,
            keys_p256dh=subscription.keys_p256dh,
            keys_auth=subscription.keys_auth,
            user_agent=subscription.user_agent,
            created_at=to_store_timestamp(subscription.created_at),
        )


class NotificationPreferenceModel(Base):
    """ORM model for notification_preferences table.

    Every flag is nullable; NULL means the member never chose and is opted in.
    """

    __tablename__ = "notification_preferences"

    user_id = Column(String(64), ForeignKey("profiles.id"), primary_key=True, nullable=False)
    new_event = Column(Boolean, nullable=True)
    rsvp_reminder = Column(Boolean, nullable=True)
    event_update = Column(Boolean, nullable=True)
    custom_message = Column(Boolean, nullable=True)

    def to_domain(self) -> NotificationPreferences:
        """Convert ORM model to domain model."""
        return NotificationPreferences(
            user_id=self.user_id,
            new_event=self.new_event,
            rsvp_reminder=self.rsvp_reminder,
            event_update=self.event_update,
            custom_message=self.custom_message,
        )


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
