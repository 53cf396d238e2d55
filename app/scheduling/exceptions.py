"""Exceptions raised while planning event notifications."""


class SchedulingError(Exception):
    """A notification cannot be scheduled as requested."""

    pass


class DuplicateAnnouncementError(SchedulingError):
    """The event already has a pending announcement."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} already has a pending announcement")
