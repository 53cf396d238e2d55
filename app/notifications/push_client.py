"""Web push sender built on pywebpush.

The client signs each request with the club's VAPID key and classifies
failures: a 404 or 410 from the push service means the browser dropped the
subscription for good, anything else is treated as transient.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

import requests
from pywebpush import WebPushException, webpush

from app.config.environment import EnvironmentConfig
from app.config.models import PushConfig, PushUrgency
from app.domain.models import PushSubscription

from .models import PushConfigurationError, PushDeliveryError, PushSubscriptionGoneError

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = frozenset({404, 410})


class PushClient:
    """Send JSON payloads to browser push subscriptions.

    Args:
        vapid_private_key: VAPID private key (base64url or PEM)
        vapid_subject: Contact claim, ``mailto:`` or ``https:`` URL
        ttl_seconds: How long the push service may hold an undelivered message
        urgency: Urgency header value (very-low, low, normal, high)
        timeout_seconds: HTTP timeout per push request
        session: Shared requests session (one is created if omitted)
        webpush_func: Replacement for ``pywebpush.webpush`` (for mocking)

    Raises:
        PushConfigurationError: If the VAPID key or subject is missing
    """

    def __init__(
        self,
        vapid_private_key: Optional[str],
        vapid_subject: Optional[str],
        ttl_seconds: int = 86400,
        urgency: str = "normal",
        timeout_seconds: float = 10,
        session: Optional[requests.Session] = None,
        webpush_func: Optional[Callable[..., Any]] = None,
    ):
        if not vapid_private_key or not vapid_subject:
            raise PushConfigurationError(
                "VAPID_PRIVATE_KEY and VAPID_SUBJECT must be set to send push notifications"
            )

        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl_seconds = ttl_seconds
        self.urgency = urgency
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.webpush_func = webpush_func or webpush

    @classmethod
    def from_config(
        cls,
        env_config: EnvironmentConfig,
        push_config: PushConfig,
        timeout_seconds: float = 10,
    ) -> "PushClient":
        """Build a client from environment secrets and the ``push`` config section."""
        return cls(
            vapid_private_key=env_config.vapid_private_key,
            vapid_subject=env_config.vapid_subject,
            ttl_seconds=push_config.ttl_seconds,
            urgency=PushUrgency(push_config.urgency).value,
            timeout_seconds=timeout_seconds,
        )

    def send(self, subscription: PushSubscription, payload: Dict[str, Any]) -> None:
        """Deliver ``payload`` to one subscription.

        Raises:
            PushSubscriptionGoneError: If the push service answered 404 or 410
            PushDeliveryError: For any other failure
        """
        try:
            self.webpush_func(
                subscription_info=subscription.subscription_info(),
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                # pywebpush adds aud/exp to the claims it is given
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl_seconds,
                headers={"Urgency": self.urgency},
                timeout=self.timeout_seconds,
                requests_session=self.session,
            )
            logger.debug(f"Push delivered to {subscription.short_endpoint()}")

        except WebPushException as e:
            response = getattr(e, "response", None)
            status_code = getattr(response, "status_code", None)
            if status_code in GONE_STATUS_CODES:
                raise PushSubscriptionGoneError(subscription.endpoint, status_code) from e
            raise PushDeliveryError(f"Push service rejected message: {e}", status_code) from e
        except requests.RequestException as e:
            raise PushDeliveryError(f"Network error during push delivery: {e}") from e

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self.session.close()
