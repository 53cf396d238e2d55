"""Unit tests for fallback email rendering and link handling.

Tests:
- Template rendering of subject, text and HTML bodies
- HTML escaping of notification fields and line breaks
- Strict undefined variable detection
- Base URL selection and the link allow-list
"""

from datetime import datetime, timezone

import pytest

from app.config.environment import EnvironmentConfig
from app.domain.models import ScheduledNotification, TargetType
from app.notifications.links import allowed_hosts, resolve_base_url, resolve_link
from app.notifications.models import NotificationTemplateError
from app.notifications.payloads import build_email_context
from app.notifications.templates import TemplateRenderer

BASE_URL = "https://app.everybodybike.org"
ALLOWED = {"app.everybodybike.org", "localhost"}


def make_notification(**overrides):
    fields = {
        "id": "notif-1",
        "title": "Saturday Ride",
        "body": "Meet at the trailhead.\nBring water.",
        "url": "/events/event-1",
        "scheduled_for": datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc),
        "target_type": TargetType.ALL,
    }
    fields.update(overrides)
    return ScheduledNotification(**fields)


@pytest.fixture
def renderer():
    return TemplateRenderer()


class TestBuildEmailContext:
    def test_context_keys(self):
        context = build_email_context(make_notification(), BASE_URL, ALLOWED)

        assert context["title"] == "Saturday Ride"
        assert context["action_url"] == "https://app.everybodybike.org/events/event-1"
        assert context["manage_url"] == "https://app.everybodybike.org/settings/notifications"
        assert context["site_url"] == BASE_URL
        assert context["notification_id"] == "notif-1"

    def test_untrusted_link_dropped(self):
        context = build_email_context(
            make_notification(url="https://phish.example.com/login"), BASE_URL, ALLOWED
        )
        assert context["action_url"] is None

    def test_preheader_truncated(self):
        context = build_email_context(make_notification(body="x" * 500), BASE_URL, ALLOWED)
        assert len(context["preheader"]) == 160


class TestTemplateRenderer:
    def test_renders_all_parts(self, renderer):
        content = renderer.render(build_email_context(make_notification(), BASE_URL, ALLOWED))

        assert content.subject == "Saturday Ride"
        assert "Meet at the trailhead.\nBring water." in content.text_body
        assert "Open in the app: https://app.everybodybike.org/events/event-1" in content.text_body
        assert "Meet at the trailhead.<br />Bring water." in content.html_body
        assert 'href="https://app.everybodybike.org/events/event-1"' in content.html_body
        assert 'href="https://app.everybodybike.org/settings/notifications"' in content.html_body

    def test_html_fields_escaped(self, renderer):
        notification = make_notification(
            title="<script>alert(1)</script>", body='Ride & "social" <b>after</b>'
        )

        content = renderer.render(build_email_context(notification, BASE_URL, ALLOWED))

        assert "<script>" not in content.html_body
        assert "&lt;script&gt;" in content.html_body
        assert "Ride &amp; &#34;social&#34; &lt;b&gt;after&lt;/b&gt;" in content.html_body
        # Plain text keeps the member's text as written
        assert 'Ride & "social" <b>after</b>' in content.text_body

    def test_no_action_link_without_url(self, renderer):
        content = renderer.render(build_email_context(make_notification(url=None), BASE_URL, ALLOWED))

        assert "Open in the app" not in content.html_body
        assert "Open in the app" not in content.text_body
        assert "settings/notifications" in content.text_body

    def test_subject_is_single_line(self, renderer):
        context = build_email_context(make_notification(), BASE_URL, ALLOWED)
        context["title"] = "Line one\nLine two"

        assert renderer.render(context).subject == "Line one Line two"

    def test_missing_variable_raises(self, renderer):
        context = build_email_context(make_notification(), BASE_URL, ALLOWED)
        del context["manage_url"]

        with pytest.raises(NotificationTemplateError, match="Template rendering failed"):
            renderer.render(context)

    def test_missing_template_raises(self):
        renderer = TemplateRenderer(html_template="missing.html.j2")

        with pytest.raises(NotificationTemplateError):
            renderer.render(build_email_context(make_notification(), BASE_URL, ALLOWED))


class TestLinks:
    def test_base_url_priority(self):
        assert resolve_base_url(EnvironmentConfig(app_url="https://a.org/", base_url="https://b.org")) == "https://a.org"
        assert resolve_base_url(EnvironmentConfig(base_url="https://b.org")) == "https://b.org"
        assert resolve_base_url(EnvironmentConfig()) == "http://localhost:3000"

    def test_allowed_hosts(self):
        env = EnvironmentConfig(
            app_url="https://App.EverybodyBike.org",
            allowed_hosts=" rides.everybodybike.org , ,STAGING.everybodybike.org:8443",
        )

        hosts = allowed_hosts(env)

        assert {"app.everybodybike.org", "rides.everybodybike.org", "staging.everybodybike.org:8443"} <= hosts
        assert "localhost:3000" in hosts
        assert "" not in hosts

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("/events/1", "https://app.everybodybike.org/events/1"),
            ("  /news ", "https://app.everybodybike.org/news"),
            ("https://app.everybodybike.org/x", "https://app.everybodybike.org/x"),
            ("http://localhost/x", "http://localhost/x"),
            ("//evil.example.com/x", None),
            ("https://evil.example.com/x", None),
            ("javascript:alert(1)", None),
            ("", None),
            (None, None),
        ],
    )
    def test_resolve_link(self, url, expected):
        assert resolve_link(url, BASE_URL, ALLOWED) == expected
