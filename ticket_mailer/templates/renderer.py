"""Jinja2 template renderer for ticket emails.

Renders the default subject and bodies used when a send_email job does
not carry its own. Missing template files fall back to built-in text.

Version: 3.0.0
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from ticket_mailer.core.exceptions import TemplateRenderError
from ticket_mailer.core.logger import get_logger

logger = get_logger(__name__)

TEMPLATE_NAME = "ticket_email"
FALLBACK_SUBJECT = "Your Ticket for {event_name}"
FALLBACK_TEXT = "Your ticket is attached."


class TemplateRenderer:
    """Jinja2 renderer for the ticket email templates.

    Looks up ``ticket_email.subject.txt``, ``ticket_email.txt`` and
    ``ticket_email.html`` in the template directory. Only the HTML
    variant is autoescaped.
    """

    def __init__(self, template_dir: str | Path) -> None:
        """Initialize template renderer.

        Args:
            template_dir: Path to templates directory.

        Raises:
            TemplateRenderError: If the Jinja2 environment cannot be created.
        """
        self.template_dir = Path(template_dir)

        try:
            self.env = Environment(
                loader=FileSystemLoader(self.template_dir),
                autoescape=select_autoescape(enabled_extensions=("html",), default=False),
                trim_blocks=True,
                lstrip_blocks=True,
            )
            logger.info(f"Template renderer initialized: {self.template_dir}")
        except Exception as e:
            logger.error(f"Failed to initialize template renderer: {e}")
            raise TemplateRenderError(f"Failed to initialize Jinja2: {e}") from e

    def _render(self, template_name: str, context: dict[str, Any]) -> str | None:
        """Render a template, returning None when the file does not exist.

        Raises:
            TemplateRenderError: If the template exists but fails to render.
        """
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound:
            logger.debug(f"Template not found: {template_name}")
            return None

        try:
            rendered = template.render(**context).strip()
            logger.debug(f"Template {template_name} rendered: {len(rendered)} bytes")
            return rendered
        except Exception as e:
            logger.error(f"Failed to render template {template_name}: {e}")
            raise TemplateRenderError(
                f"Failed to render {template_name}: {e}",
                template_name=template_name,
            ) from e

    def render_subject(self, context: dict[str, Any]) -> str:
        """Render the default subject line.

        Args:
            context: Template variables; ``event_name`` is always expected.
        """
        rendered = self._render(f"{TEMPLATE_NAME}.subject.txt", context)
        if not rendered:
            return FALLBACK_SUBJECT.format(event_name=context.get("event_name") or "Event")
        # Header values must stay on one line
        return " ".join(rendered.split())

    def render_text(self, context: dict[str, Any]) -> str:
        """Render the default plain-text body."""
        return self._render(f"{TEMPLATE_NAME}.txt", context) or FALLBACK_TEXT

    def render_html(self, context: dict[str, Any]) -> str | None:
        """Render the default HTML body, or None when no HTML template exists."""
        return self._render(f"{TEMPLATE_NAME}.html", context) or None
