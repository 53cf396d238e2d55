"""Base URL and safe link resolution for outgoing messages.

Links stored on notifications are either app-relative paths or absolute
URLs. Only paths and absolute http(s) URLs on an allow-listed host are ever
turned into clickable links.
"""

from typing import Optional, Set
from urllib.parse import urlsplit

from app.config.environment import EnvironmentConfig

DEFAULT_BASE_URL = "http://localhost:3000"
LOCAL_HOSTS = ("localhost", "localhost:3000", "127.0.0.1", "127.0.0.1:3000")
NOTIFICATION_SETTINGS_PATH = "/settings/notifications"


def resolve_base_url(env_config: EnvironmentConfig) -> str:
    """Public base URL: APP_URL, then BASE_URL, then localhost; no trailing slash."""
    base_url = env_config.app_url or env_config.base_url or DEFAULT_BASE_URL
    return base_url.rstrip("/")


def allowed_hosts(env_config: EnvironmentConfig) -> Set[str]:
    """Hosts (with optional port) that absolute links may point at.

    Always includes the localhost variants, every entry of ALLOWED_HOSTS and
    the hosts of APP_URL and BASE_URL. Entries are lower-cased.
    """
    hosts = set(LOCAL_HOSTS)

    if env_config.allowed_hosts:
        hosts.update(
            host.strip().lower() for host in env_config.allowed_hosts.split(",") if host.strip()
        )

    for url in (env_config.app_url, env_config.base_url):
        if url:
            netloc = urlsplit(url).netloc.lower()
            if netloc:
                hosts.add(netloc)

    return hosts


def resolve_link(url: Optional[str], base_url: str, allowed: Set[str]) -> Optional[str]:
    """Turn a stored link into a safe absolute URL, or None.

    Example:
        >>> resolve_link("/events/42", "https://club.example", {"club.example"})
        'https://club.example/events/42'
        >>> resolve_link("https://evil.example/x", "https://club.example", {"club.example"}) is None
        True
    """
    if not url or not url.strip():
        return None

    url = url.strip()

    # Protocol-relative URLs ("//host/path") would leave the base origin
    if url.startswith("/") and not url.startswith("//"):
        return f"{base_url.rstrip('/')}{url}"

    parts = urlsplit(url)
    if parts.scheme.lower() in ("http", "https") and parts.netloc.lower() in allowed:
        return url

    return None
