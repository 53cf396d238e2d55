"""Periodic execution of the notification dispatcher."""

from .service import JOB_ID, SchedulerService

__all__ = [
    "SchedulerService",
    "JOB_ID",
]
