"""Template context for fallback emails."""

from typing import Dict, Optional, Set

from app.domain.models import ScheduledNotification

from .links import NOTIFICATION_SETTINGS_PATH, resolve_link

ACTION_LABEL = "Open in the app"
PREHEADER_LENGTH = 160


def build_email_context(
    notification: ScheduledNotification,
    base_url: str,
    allowed: Set[str],
) -> Dict[str, Optional[str]]:
    """Build the context rendered by the email templates.

    Keys:
        - title, body: Notification text (escaped by the templates)
        - preheader: Inbox preview text
        - action_url: Safe absolute link, or None when the stored link is
          missing or not trusted
        - action_label: Button text shown with action_url
        - manage_url: Where the member can change notification settings
        - site_url: Club base URL
    """
    return {
        "title": notification.title,
        "body": notification.body,
        "preheader": notification.body[:PREHEADER_LENGTH],
        "action_url": resolve_link(notification.url, base_url, allowed),
        "action_label": ACTION_LABEL,
        "manage_url": f"{base_url}{NOTIFICATION_SETTINGS_PATH}",
        "site_url": base_url,
        "notification_id": notification.id,
    }
