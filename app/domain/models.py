"""Core domain models for scheduled notifications and their recipients.

This module defines the data structures used throughout the application:
- ScheduledNotification: a notification waiting for (or done with) dispatch
- PushSubscription: a browser push endpoint owned by a user
- NotificationPreferences: per-user category opt-outs
- Event: the subset of event data needed to plan and word notifications
"""

import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid.uuid4())


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    # If timezone-naive, treat as UTC
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class TargetType(str, Enum):
    """Audience scopes a scheduled notification can address."""

    ALL = "all"
    GROUP = "group"
    EVENT_ALL = "event_all"
    EVENT_RSVPD = "event_rsvpd"
    EVENT_NOT_RSVPD = "event_not_rsvpd"

    @property
    def requires_target(self) -> bool:
        """Whether a target_id (group or event id) must accompany this type."""
        return self is not TargetType.ALL

    @property
    def is_event_scoped(self) -> bool:
        """Whether target_id refers to an event."""
        return self in (
            TargetType.EVENT_ALL,
            TargetType.EVENT_RSVPD,
            TargetType.EVENT_NOT_RSVPD,
        )


class NotificationCategory(str, Enum):
    """Notification categories; each maps to one preference flag."""

    ANNOUNCEMENT = "announcement"
    REMINDER = "reminder"
    EVENT_UPDATE = "event_update"
    CUSTOM_MESSAGE = "custom_message"


class InviteStatus(str, Enum):
    """Invitation state of a member profile."""

    PENDING = "pending"
    ACCEPTED = "accepted"


class Role(str, Enum):
    """Member roles relevant to audience resolution."""

    RIDER = "rider"
    PARENT = "parent"
    ROLL_MODEL = "roll_model"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})
COACH_ROLES = frozenset({Role.ROLL_MODEL})


class ScheduledNotification(BaseModel):
    """A notification scheduled for delivery to a resolved audience.

    ``sent`` only ever moves from False to True; the dispatcher flips it after
    one processing attempt whatever the delivery outcome.
    """

    id: str = Field(default_factory=new_id, description="Notification identifier")
    title: str = Field(..., min_length=1, max_length=120, description="Push title / email subject")
    body: str = Field(..., min_length=1, max_length=500, description="Message body")
    url: Optional[str] = Field(None, description="Absolute http(s) URL or app-relative path")
    scheduled_for: datetime = Field(..., description="When the notification becomes due (UTC)")
    target_type: TargetType = Field(..., description="Audience scope")
    target_id: Optional[str] = Field(None, description="Group or event id for scoped targets")
    category: NotificationCategory = Field(
        NotificationCategory.CUSTOM_MESSAGE, description="Category used for opt-out filtering"
    )
    event_id: Optional[str] = Field(None, description="Event this notification belongs to")
    sent: bool = Field(False, description="Whether the dispatcher has processed it")
    created_by: Optional[str] = Field(None, description="Profile id of the creator")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Creation time (UTC)"
    )

    @field_validator("title", "body")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip whitespace from text fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        """Accept absolute http(s) URLs and app-relative paths only."""
        if v is None:
            return None
        stripped = v.strip()
        if not stripped:
            return None
        if not (_ABSOLUTE_URL.match(stripped) or stripped.startswith("/")):
            raise ValueError("URL must be absolute or start with /")
        return stripped

    @field_validator("scheduled_for", "created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return _as_utc(v)

    @model_validator(mode="after")
    def validate_target(self):
        """Scoped targets need a target_id; the 'all' target forbids one."""
        if self.target_type.requires_target and not self.target_id:
            raise ValueError(
                f"Target is required for this notification type: {self.target_type.value}"
            )
        if not self.target_type.requires_target and self.target_id:
            raise ValueError(
                f"Target is not allowed for this notification type: {self.target_type.value}"
            )
        return self

    def push_payload(self) -> Dict[str, Any]:
        """Payload delivered to every push subscription."""
        return {"title": self.title, "body": self.body, "url": self.url or "/"}


class PushSubscription(BaseModel):
    """A web push endpoint registered by a user's browser."""

    id: str = Field(default_factory=new_id, description="Subscription identifier")
    user_id: str = Field(..., description="Owning profile id")
    endpoint: str = Field(..., min_length=1, description="Push service endpoint URL")
    keys_p256dh: str = Field(..., min_length=1, description="Client public key")
    keys_auth: str = Field(..., min_length=1, description="Client auth secret")
    user_agent: Optional[str] = Field(None, description="Browser user agent at registration")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Registration time (UTC)"
    )

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return _as_utc(v)

    def subscription_info(self) -> Dict[str, Any]:
        """Subscription in the shape expected by web push libraries."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.keys_p256dh, "auth": self.keys_auth},
        }

    def short_endpoint(self) -> str:
        """Endpoint truncated for logging."""
        return self.endpoint[:60]


class NotificationPreferences(BaseModel):
    """Per-user opt-out flags. ``None`` means the user never chose: opted in."""

    user_id: str
    new_event: Optional[bool] = None
    rsvp_reminder: Optional[bool] = None
    event_update: Optional[bool] = None
    custom_message: Optional[bool] = None

    def allows(self, preference_field: str) -> bool:
        """Only an explicit False opts the user out."""
        return getattr(self, preference_field, None) is not False


class Event(BaseModel):
    """Event data needed to schedule and word notifications."""

    id: str = Field(default_factory=new_id)
    title: str = Field(..., min_length=1)
    starts_at: datetime
    location: Optional[str] = None
    canceled_at: Optional[datetime] = None
    canceled_reason: Optional[str] = None
    canceled_by: Optional[str] = None

    @field_validator("starts_at", "canceled_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _as_utc(v)

    @property
    def is_canceled(self) -> bool:
        return self.canceled_at is not None
