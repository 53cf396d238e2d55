"""Data models and exceptions for the delivery channels.

This module defines result types and custom exceptions shared by the push
and email senders.
"""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when an SMTP send attempt fails."""

    pass


class EmailNotConfiguredError(NotificationError):
    """Raised when an email send is attempted without SMTP host and credentials."""

    pass


class PushConfigurationError(NotificationError):
    """Raised when VAPID settings are missing or unusable."""

    pass


class PushDeliveryError(NotificationError):
    """Raised when a push service rejects or fails to accept a message.

    Attributes:
        status_code: HTTP status from the push service, if one was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PushSubscriptionGoneError(PushDeliveryError):
    """The push service reports the subscription no longer exists (404/410)."""

    def __init__(self, endpoint: str, status_code: int):
        self.endpoint = endpoint
        super().__init__(f"Push subscription gone: {endpoint[:60]}", status_code)


@dataclass
class EmailContent:
    """Rendered email ready for sending."""

    subject: str
    text_body: str
    html_body: str


@dataclass
class EmailSendResult:
    """Outcome of delivering one email, including retries.

    Attributes:
        address: Recipient address
        attempts: Number of send attempts made
        status: "sent" or "failed"
        error: Last error message if delivery failed
    """

    address: str
    attempts: int
    status: str  # "sent", "failed"
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == "sent"
