"""Delivery channels for scheduled notifications.

- PushClient: web push (primary channel) via pywebpush
- EmailSender: SMTP email (fallback channel) with retry/backoff
- TemplateRenderer: Jinja2 rendering of fallback emails
- Link helpers: base URL and allow-listed link resolution
"""

from .email_sender import EmailSender
from .links import allowed_hosts, resolve_base_url, resolve_link
from .models import (
    EmailContent,
    EmailNotConfiguredError,
    EmailSendResult,
    NotificationError,
    NotificationTemplateError,
    PushConfigurationError,
    PushDeliveryError,
    PushSubscriptionGoneError,
    SMTPDeliveryError,
)
from .payloads import build_email_context
from .push_client import PushClient
from .smtp_client import SMTPClient, build_sender_address, normalize_address
from .templates import TemplateRenderer

__all__ = [
    # Senders
    "PushClient",
    "EmailSender",
    "SMTPClient",
    "TemplateRenderer",
    # Models and results
    "EmailContent",
    "EmailSendResult",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "EmailNotConfiguredError",
    "PushConfigurationError",
    "PushDeliveryError",
    "PushSubscriptionGoneError",
    # Utilities
    "build_email_context",
    "build_sender_address",
    "normalize_address",
    "resolve_base_url",
    "allowed_hosts",
    "resolve_link",
]
