"""Tests for SubscriptionPruner."""

from app.dispatch.pruner import SubscriptionPruner
from app.persistence.repositories import SubscriptionRepository
from tests.helpers import add_profile, add_subscription


def test_prune_removes_subscription(session):
    add_profile(session, "adult", roles=["rider"])
    subscription = add_subscription(session, "adult")
    repository = SubscriptionRepository(session)

    assert SubscriptionPruner(repository).prune(subscription.id) is True
    assert repository.get_for_users(["adult"]) == []


def test_prune_missing_subscription_is_not_an_error(session):
    add_profile(session, "adult", roles=["rider"])
    subscription = add_subscription(session, "adult")
    pruner = SubscriptionPruner(SubscriptionRepository(session))
    pruner.prune(subscription.id)

    assert pruner.prune(subscription.id) is False
    assert pruner.prune("never-existed") is False
