"""Email sender for the fallback channel.

Builds a multipart message (plain text plus HTML alternative) and hands it
to the SMTP client, retrying failed attempts with exponential backoff.
"""

import logging
import time
from email.message import EmailMessage
from typing import Callable, Optional

from app.config.environment import EnvironmentConfig
from app.config.models import EmailConfig
from app.logging import get_logger

from .models import EmailNotConfiguredError, EmailSendResult, SMTPDeliveryError
from .smtp_client import SMTPClient, build_sender_address, normalize_address

logger = get_logger(__name__, component="email")

MAX_RETRY_DELAY_SECONDS = 60.0


class EmailSender:
    """Secondary channel sender.

    Args:
        env_config: SMTP host, credentials and sender identity
        email_config: TLS and retry settings
        smtp_client: SMTP client instance (creates default if None)
        sleep: Delay function between retries (for tests)
        logger_instance: Logger instance (uses module logger if None)
    """

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        smtp_client: Optional[SMTPClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.smtp_client = smtp_client or SMTPClient()
        self.sleep = sleep
        self.logger = logger_instance or logger

    def is_configured(self) -> bool:
        """SMTP host, user and password are all set."""
        return self.env_config.email_configured

    def build_message(self, address: str, subject: str, text_body: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = build_sender_address(self.env_config)
        message["To"] = address
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    def send(self, address: str, subject: str, text_body: str, html_body: str) -> EmailSendResult:
        """Send one email, retrying SMTP failures.

        Returns:
            EmailSendResult with status "sent" or "failed"

        Raises:
            EmailNotConfiguredError: If the channel is not configured
        """
        if not self.is_configured():
            raise EmailNotConfiguredError("SMTP_HOST, SMTP_USER and SMTP_PASS must all be set")

        try:
            recipient = normalize_address(address)
            message = self.build_message(recipient, subject, text_body, html_body)
        except ValueError as e:
            self.logger.warning(
                f"Cannot build email: {e}",
                extra={"event": "email.message.invalid"},
            )
            return EmailSendResult(address=address, attempts=0, status="failed", error=str(e))

        max_attempts = self.email_config.max_retries + 1
        last_error = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = self.email_config.retry_initial_delay * (
                    self.email_config.retry_backoff_multiplier ** (attempt - 2)
                )
                delay = min(delay, MAX_RETRY_DELAY_SECONDS)
                self.logger.warning(
                    f"Retrying email to {recipient} (attempt {attempt}/{max_attempts}) after {delay:.1f}s delay",
                    extra={"event": "email.send.retry", "attempt": attempt},
                )
                self.sleep(delay)

            try:
                self.smtp_client.send(message, self.env_config, self.email_config.use_tls)
                self.logger.info(
                    f"Email sent to {recipient} (attempts: {attempt})",
                    extra={"event": "email.send.success", "attempt": attempt},
                )
                return EmailSendResult(address=recipient, attempts=attempt, status="sent")

            except SMTPDeliveryError as e:
                last_error = str(e)
                self.logger.warning(
                    f"SMTP delivery failed for {recipient} (attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "email.send.failure",
                        "attempt": attempt,
                        "retry_remaining": attempt < max_attempts,
                    },
                )

        return EmailSendResult(
            address=recipient, attempts=max_attempts, status="failed", error=last_error
        )
