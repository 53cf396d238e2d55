"""Removal of push subscriptions the push service reports as gone."""

from app.logging import get_logger
from app.persistence.repositories import SubscriptionRepository

logger = get_logger(__name__, component="dispatch")


class SubscriptionPruner:
    """Delete dead push subscriptions.

    Deleting an id that is already gone is not an error.
    """

    def __init__(self, repository: SubscriptionRepository):
        self.repository = repository

    def prune(self, subscription_id: str) -> bool:
        """Delete the subscription; True if a row was removed."""
        removed = self.repository.delete(subscription_id)
        logger.info(
            f"Pruned push subscription {subscription_id}" if removed
            else f"Push subscription {subscription_id} already removed",
            extra={
                "event": "dispatch.subscription.pruned",
                "subscription_id": subscription_id,
                "removed": removed,
            },
        )
        return removed
