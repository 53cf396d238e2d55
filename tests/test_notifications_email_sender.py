"""Unit tests for the email fallback sender."""

from unittest.mock import Mock

import pytest

from app.config.environment import EnvironmentConfig
from app.config.models import EmailConfig
from app.notifications.email_sender import MAX_RETRY_DELAY_SECONDS, EmailSender
from app.notifications.models import EmailNotConfiguredError, SMTPDeliveryError
from app.notifications.smtp_client import SMTPClient


@pytest.fixture
def env():
    return EnvironmentConfig(
        smtp_host="smtp.everybodybike.org",
        smtp_user="notify@everybodybike.org",
        smtp_pass="secret",
        smtp_from="rides@everybodybike.org",
    )


@pytest.fixture
def smtp_client():
    return Mock(spec=SMTPClient)


@pytest.fixture
def sleep():
    return Mock()


def make_sender(env, smtp_client, sleep, **email_settings):
    return EmailSender(env, EmailConfig(**email_settings), smtp_client=smtp_client, sleep=sleep)


class TestEmailSender:
    def test_sends_multipart_message(self, env, smtp_client, sleep):
        sender = make_sender(env, smtp_client, sleep)

        result = sender.send("parent@everybodybike.org", "Saturday Ride", "plain body", "<p>html body</p>")

        assert result.is_success()
        assert result.attempts == 1
        message, env_arg, use_tls = smtp_client.send.call_args[0]
        assert env_arg is env
        assert use_tls is True
        assert message["To"] == "parent@everybodybike.org"
        assert message["Subject"] == "Saturday Ride"
        assert message["From"] == "Everybody Bike <rides@everybodybike.org>"
        assert message.is_multipart()
        assert message.get_body(("plain",)).get_content().strip() == "plain body"
        assert "<p>html body</p>" in message.get_body(("html",)).get_content()
        sleep.assert_not_called()

    def test_retries_with_exponential_backoff(self, env, smtp_client, sleep):
        smtp_client.send.side_effect = [
            SMTPDeliveryError("busy"),
            SMTPDeliveryError("busy"),
            None,
        ]
        sender = make_sender(env, smtp_client, sleep, max_retries=2, retry_initial_delay=3)

        result = sender.send("parent@everybodybike.org", "s", "t", "h")

        assert result.status == "sent"
        assert result.attempts == 3
        assert [c.args[0] for c in sleep.call_args_list] == [3, 6]

    def test_gives_up_after_max_retries(self, env, smtp_client, sleep):
        smtp_client.send.side_effect = SMTPDeliveryError("mailbox unavailable")
        sender = make_sender(env, smtp_client, sleep, max_retries=1)

        result = sender.send("parent@everybodybike.org", "s", "t", "h")

        assert result.status == "failed"
        assert result.attempts == 2
        assert result.error == "mailbox unavailable"
        assert smtp_client.send.call_count == 2

    def test_backoff_is_capped(self, env, smtp_client, sleep):
        smtp_client.send.side_effect = SMTPDeliveryError("busy")
        sender = make_sender(
            env, smtp_client, sleep, max_retries=4, retry_initial_delay=30, retry_backoff_multiplier=5.0
        )

        sender.send("parent@everybodybike.org", "s", "t", "h")

        assert max(c.args[0] for c in sleep.call_args_list) == MAX_RETRY_DELAY_SECONDS

    def test_invalid_address_is_not_attempted(self, env, smtp_client, sleep):
        sender = make_sender(env, smtp_client, sleep)

        result = sender.send("not-an-address", "s", "t", "h")

        assert result.status == "failed"
        assert result.attempts == 0
        assert "Invalid email address" in result.error
        smtp_client.send.assert_not_called()

    def test_unconfigured_channel_raises(self, smtp_client, sleep):
        sender = make_sender(EnvironmentConfig(smtp_host="smtp.everybodybike.org"), smtp_client, sleep)

        assert sender.is_configured() is False
        with pytest.raises(EmailNotConfiguredError):
            sender.send("parent@everybodybike.org", "s", "t", "h")
        smtp_client.send.assert_not_called()

    def test_tls_setting_passed_through(self, env, smtp_client, sleep):
        make_sender(env, smtp_client, sleep, use_tls=False).send("parent@everybodybike.org", "s", "t", "h")

        assert smtp_client.send.call_args[0][2] is False
