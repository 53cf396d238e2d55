"""Dispatch of due notifications, event cancellation notices and the trigger gate."""

from .cancellation import EventCancellationNotifier
from .delivery import NotificationDelivery
from .exceptions import (
    DispatchAbortedError,
    DispatchError,
    EventAlreadyCanceledError,
    TriggerAuthenticationError,
    TriggerConfigurationError,
)
from .models import DeliveryStats, DispatchRunResult
from .pruner import SubscriptionPruner
from .runner import NotificationDispatcher
from .trigger import DispatchTrigger, TriggerResponse

__all__ = [
    "NotificationDispatcher",
    "NotificationDelivery",
    "SubscriptionPruner",
    "EventCancellationNotifier",
    "DispatchTrigger",
    "TriggerResponse",
    "DeliveryStats",
    "DispatchRunResult",
    "DispatchError",
    "DispatchAbortedError",
    "TriggerConfigurationError",
    "TriggerAuthenticationError",
    "EventAlreadyCanceledError",
]
