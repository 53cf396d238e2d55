"""Shared-secret gate in front of a dispatch run.

Transport neutral: an HTTP route, a cron shim or a test passes the raw
``Authorization`` header value and turns the response into its own reply.
"""

import hmac
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from app.logging import get_logger

from .exceptions import DispatchAbortedError, TriggerAuthenticationError, TriggerConfigurationError
from .runner import NotificationDispatcher

logger = get_logger(__name__, component="trigger")

BEARER_PREFIX = "Bearer "
SECRET_NOT_CONFIGURED = "NOTIFICATION_DISPATCH_SECRET is not configured"
UNAUTHORIZED = "Unauthorized"


@dataclass
class TriggerResponse:
    """Status code and JSON-style body for the caller."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


class DispatchTrigger:
    """Authenticate a caller and run the dispatcher once."""

    def __init__(self, secret: Optional[str], dispatcher: NotificationDispatcher):
        self.secret = secret or None
        self.dispatcher = dispatcher

    def authorize(self, authorization: Optional[str]) -> None:
        """Check ``Authorization: Bearer <secret>`` in constant time.

        Raises:
            TriggerConfigurationError: If no secret is configured
            TriggerAuthenticationError: If the header is missing or wrong
        """
        if not self.secret:
            raise TriggerConfigurationError(SECRET_NOT_CONFIGURED)

        expected = f"{BEARER_PREFIX}{self.secret}".encode("utf-8")
        presented = (authorization or "").encode("utf-8")
        if not hmac.compare_digest(presented, expected):
            raise TriggerAuthenticationError(UNAUTHORIZED)

    def handle(self, authorization: Optional[str]) -> TriggerResponse:
        """Authorize, run once, and build the response.

        No work is done unless the secret is configured and matched.
        """
        try:
            self.authorize(authorization)
        except TriggerConfigurationError as e:
            logger.error(str(e), extra={"event": "trigger.misconfigured"})
            return TriggerResponse(500, {"error": str(e)})
        except TriggerAuthenticationError as e:
            logger.warning("Rejected dispatch trigger", extra={"event": "trigger.unauthorized"})
            return TriggerResponse(401, {"error": str(e)})

        try:
            result = self.dispatcher.run_once()
        except DispatchAbortedError as e:
            return TriggerResponse(500, {"error": str(e)})

        return TriggerResponse(200, result.to_response())
