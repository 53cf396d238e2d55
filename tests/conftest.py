"""Shared fixtures for the test suite."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from app.config.environment import EnvironmentConfig
from app.config.models import DispatchConfig
from app.logging.context import clear_log_context
from app.notifications.email_sender import EmailSender
from app.notifications.models import EmailSendResult
from app.notifications.push_client import PushClient
from app.persistence.database import close_database, get_session, init_database

# Tuesday
FIXED_NOW = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_log_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def database():
    """Initialize an in-memory store for one test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def session(database):
    """A session that commits when the test finishes."""
    with get_session() as session:
        yield session


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def dispatch_config():
    return DispatchConfig(batch_size=25, lookup_batch_size=500, max_concurrent_sends=4)


@pytest.fixture
def env_config():
    """Environment with both channels configured."""
    return EnvironmentConfig(
        database_url="sqlite:///:memory:",
        dispatch_secret="s3cret",
        smtp_host="smtp.everybodybike.org",
        smtp_port=587,
        smtp_user="mailer@everybodybike.org",
        smtp_pass="password",
        vapid_public_key="BPublicKey",
        vapid_private_key="private-key",
        vapid_subject="mailto:admin@everybodybike.org",
        app_url="https://app.everybodybike.org",
    )


@pytest.fixture
def unconfigured_env_config():
    """Environment with neither SMTP nor VAPID settings."""
    return EnvironmentConfig(database_url="sqlite:///:memory:")


@pytest.fixture
def push_client():
    """Push client double; every send succeeds unless side_effect is changed."""
    client = Mock(spec=PushClient)
    client.send.return_value = None
    return client


@pytest.fixture
def email_sender():
    """Configured email sender double; every send succeeds."""
    sender = Mock(spec=EmailSender)
    sender.is_configured.return_value = True
    sender.send.side_effect = lambda address, subject, text, html: EmailSendResult(
        address=address, attempts=1, status="sent"
    )
    return sender


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set a complete environment and clear anything inherited."""
    for name in (
        "DATABASE_URL",
        "NOTIFICATION_DISPATCH_SECRET",
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_USER",
        "SMTP_PASS",
        "SMTP_FROM",
        "SMTP_SENDER_NAME",
        "VAPID_PUBLIC_KEY",
        "VAPID_PRIVATE_KEY",
        "VAPID_SUBJECT",
        "APP_URL",
        "BASE_URL",
        "ALLOWED_HOSTS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("NOTIFICATION_DISPATCH_SECRET", "s3cret")
    monkeypatch.setenv("SMTP_HOST", "smtp.everybodybike.org")
    monkeypatch.setenv("SMTP_PORT", "587")
    monkeypatch.setenv("SMTP_USER", "mailer@everybodybike.org")
    monkeypatch.setenv("SMTP_PASS", "password")
    monkeypatch.setenv("VAPID_PUBLIC_KEY", "BPublicKey")
    monkeypatch.setenv("VAPID_PRIVATE_KEY", "private-key")
    monkeypatch.setenv("VAPID_SUBJECT", "mailto:admin@everybodybike.org")
    monkeypatch.setenv("APP_URL", "https://app.everybodybike.org")
    return monkeypatch
