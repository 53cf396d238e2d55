"""Test helpers for seeding the club store."""

from .seeding import (
    add_coach,
    add_event,
    add_group,
    add_notification,
    add_profile,
    add_rider,
    add_rsvp,
    add_subscription,
    set_preferences,
)

__all__ = [
    "add_group",
    "add_profile",
    "add_coach",
    "add_rider",
    "add_event",
    "add_rsvp",
    "add_subscription",
    "add_notification",
    "set_preferences",
]
