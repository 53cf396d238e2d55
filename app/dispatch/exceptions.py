"""Dispatch-level exceptions."""


class DispatchError(Exception):
    """Base exception for dispatch failures."""

    pass


class DispatchAbortedError(DispatchError):
    """The run could not start, e.g. the due-notification query failed."""

    pass


class TriggerConfigurationError(DispatchError):
    """The dispatch trigger secret is not configured."""

    pass


class TriggerAuthenticationError(DispatchError):
    """The caller did not present the dispatch trigger secret."""

    pass


class EventAlreadyCanceledError(DispatchError):
    """The event being canceled already carries a cancellation."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} is already canceled")
