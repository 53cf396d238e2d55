"""Persistence layer for the club store.

Public API:
    # Database initialization and session management
    - init_database(database_url: str, timeout_seconds: int = 30) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - ScheduledNotificationRepository: due selection, inserts, mark-sent
    - SubscriptionRepository: push subscriptions (batched fetch, delete)
    - PreferenceRepository: per-user opt-outs
    - ProfileRepository: email lookups
    - AudienceRepository: group/coach/guardian/RSVP relationship reads
    - EventRepository: event reads and cancellation

Example usage:
    >>> from app.persistence import init_database, get_session, ScheduledNotificationRepository
    >>> init_database("sqlite:///./data/club_notifications.db")
    >>> with get_session() as session:
    ...     due = ScheduledNotificationRepository(session).get_due(now, limit=25)
"""

# Database initialization and session management
from .database import close_database, get_engine, get_session, init_database

# Repository classes
from .repositories import (
    AudienceRepository,
    EventRepository,
    PreferenceRepository,
    ProfileRepository,
    RsvpRecord,
    ScheduledNotificationRepository,
    SubscriptionRepository,
)

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "ScheduledNotificationRepository",
    "SubscriptionRepository",
    "PreferenceRepository",
    "ProfileRepository",
    "AudienceRepository",
    "EventRepository",
    "RsvpRecord",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
