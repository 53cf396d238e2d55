"""Per-category opt-out filtering."""

from typing import Iterable, Set

from app.domain.models import NotificationCategory
from app.logging import get_logger
from app.persistence.repositories import PreferenceRepository
from app.utils.batching import DEFAULT_BATCH_SIZE

logger = get_logger(__name__, component="audience")

PREFERENCE_FIELDS = {
    NotificationCategory.ANNOUNCEMENT: "new_event",
    NotificationCategory.REMINDER: "rsvp_reminder",
    NotificationCategory.EVENT_UPDATE: "event_update",
}
DEFAULT_PREFERENCE_FIELD = "custom_message"


def preference_field_for(category) -> str:
    """Name of the preference flag that governs ``category``.

    Example:
        >>> preference_field_for("reminder")
        'rsvp_reminder'
        >>> preference_field_for("anything-else")
        'custom_message'
    """
    try:
        return PREFERENCE_FIELDS.get(NotificationCategory(category), DEFAULT_PREFERENCE_FIELD)
    except ValueError:
        return DEFAULT_PREFERENCE_FIELD


class PreferenceFilter:
    """Drop users who explicitly opted out of a notification category.

    A missing preference row or an unset flag counts as opted in.
    """

    def __init__(self, repository: PreferenceRepository, batch_size: int = DEFAULT_BATCH_SIZE):
        self.repository = repository
        self.batch_size = batch_size

    def filter(self, user_ids: Iterable[str], category) -> Set[str]:
        user_ids = set(user_ids)
        if not user_ids:
            return set()

        field_name = preference_field_for(category)
        preferences = self.repository.get_for_users(user_ids, self.batch_size)

        opted_in = {
            user_id
            for user_id in user_ids
            if user_id not in preferences or preferences[user_id].allows(field_name)
        }

        removed = len(user_ids) - len(opted_in)
        if removed:
            logger.debug(
                f"Removed {removed} opted-out user(s) for {field_name}",
                extra={
                    "event": "audience.preferences.filtered",
                    "preference": field_name,
                    "removed": removed,
                },
            )
        return opted_in
