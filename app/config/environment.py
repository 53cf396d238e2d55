"""Environment variable loading and validation."""

import os
from typing import List, Optional
from urllib.parse import urlparse

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/club_notifications.db"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder.

    Holds secrets and deployment-specific endpoints. Every delivery channel is
    optional here: a missing SMTP or VAPID setting disables (or fails) that
    channel at send time rather than at startup.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        dispatch_secret: Optional[str] = None,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_from: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        vapid_public_key: Optional[str] = None,
        vapid_private_key: Optional[str] = None,
        vapid_subject: Optional[str] = None,
        app_url: Optional[str] = None,
        base_url: Optional[str] = None,
        allowed_hosts: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        """Initialize environment configuration."""
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.dispatch_secret = dispatch_secret or None
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_from = smtp_from
        self.smtp_sender_name = smtp_sender_name or "Everybody Bike"
        self.vapid_public_key = vapid_public_key
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.app_url = app_url
        self.base_url = base_url
        self.allowed_hosts = allowed_hosts
        self.log_level = log_level

    @property
    def email_configured(self) -> bool:
        """Whether SMTP host and credentials are all present."""
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass)

    @property
    def push_configured(self) -> bool:
        """Whether all VAPID settings are present."""
        return bool(self.vapid_public_key and self.vapid_private_key and self.vapid_subject)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Optional environment variables:
    - DATABASE_URL: Store URL (default: sqlite:///./data/club_notifications.db)
    - NOTIFICATION_DISPATCH_SECRET: Shared secret for the dispatch trigger
    - SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_FROM, SMTP_SENDER_NAME
    - VAPID_PUBLIC_KEY, VAPID_PRIVATE_KEY, VAPID_SUBJECT
    - APP_URL / BASE_URL: Public base URL used to build links
    - ALLOWED_HOSTS: Comma-separated hosts accepted as link origins
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If any variable is present but invalid
    """
    errors: List[str] = []

    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    vapid_subject = os.getenv("VAPID_SUBJECT")
    log_level = os.getenv("LOG_LEVEL")
    app_url = os.getenv("APP_URL")
    base_url = os.getenv("BASE_URL")

    # Validate SMTP_PORT is numeric and in valid range
    smtp_port = 587
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(
                    f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535."
                )
        except ValueError:
            errors.append(
                f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer."
            )

    # Validate SMTP authentication consistency
    if smtp_user and not smtp_pass:
        errors.append(
            "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
        )
    elif smtp_pass and not smtp_user:
        errors.append(
            "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
        )

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if vapid_subject and not vapid_subject.startswith(("mailto:", "https://")):
        errors.append(
            f"Invalid VAPID_SUBJECT: '{vapid_subject}'. Must start with 'mailto:' or 'https://'."
        )

    for name, value in (("APP_URL", app_url), ("BASE_URL", base_url)):
        if value and not _is_http_url(value):
            errors.append(f"Invalid {name}: '{value}'. Must be an absolute http(s) URL.")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Verify SMTP_PORT is a number between 1 and 65535",
                "Set SMTP_USER and SMTP_PASS together",
            ],
        )

    return EnvironmentConfig(
        database_url=os.getenv("DATABASE_URL"),
        dispatch_secret=os.getenv("NOTIFICATION_DISPATCH_SECRET"),
        smtp_host=os.getenv("SMTP_HOST"),
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_from=os.getenv("SMTP_FROM"),
        smtp_sender_name=os.getenv("SMTP_SENDER_NAME"),
        vapid_public_key=os.getenv("VAPID_PUBLIC_KEY"),
        vapid_private_key=os.getenv("VAPID_PRIVATE_KEY"),
        vapid_subject=vapid_subject,
        app_url=app_url,
        base_url=base_url,
        allowed_hosts=os.getenv("ALLOWED_HOSTS"),
        log_level=log_level,
    )


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
