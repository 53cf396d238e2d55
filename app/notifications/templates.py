"""Template rendering for fallback emails using Jinja2.

Templates live in the ``app.notifications.email_templates`` package
directory. Autoescaping covers every notification field in the HTML body,
StrictUndefined turns a missing context key into an error. Subject and
plain-text templates are rendered without escaping.
"""

import logging
from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from .models import EmailContent, NotificationTemplateError

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders subject, plain text and HTML for a notification email."""

    def __init__(
        self,
        template_dir: str = "email_templates",
        subject_template: str = "notification_subject.j2",
        html_template: str = "notification_body.html.j2",
        text_template: str = "notification_body.txt.j2",
    ):
        self.subject_template_name = subject_template
        self.html_template_name = html_template
        self.text_template_name = text_template

        self.env = Environment(
            loader=PackageLoader("app.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            undefined=StrictUndefined,
            keep_trailing_newline=False,
        )

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, context: Dict) -> EmailContent:
        """Render all three parts.

        Raises:
            NotificationTemplateError: If a template is missing or fails to render
        """
        try:
            subject_template = self.env.get_template(self.subject_template_name)
            html_template = self.env.get_template(self.html_template_name)
            text_template = self.env.get_template(self.text_template_name)

            # Subjects must be a single line
            subject = " ".join(subject_template.render(context).split())

            return EmailContent(
                subject=subject,
                text_body=text_template.render(context),
                html_body=html_template.render(context),
            )

        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e
