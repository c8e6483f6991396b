"""Unit tests for template renderer.

Tests Jinja2 template loading, rendering, and fallback text.

Author: Odiseo
Version: 2.0.0
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ticket_mailer.core.exceptions import TemplateRenderError
from ticket_mailer.templates.renderer import FALLBACK_TEXT, TemplateRenderer

CONTEXT = {"event_name": "Summer Fest", "ticket_number": "TCK-0001", "holder_name": "Ana"}


@pytest.fixture
def temp_template_dir(tmp_path: Path) -> Path:
    """Template directory with subject, text and HTML variants."""
    (tmp_path / "ticket_email.subject.txt").write_text(
        "Ticket {{ ticket_number }}\nfor {{ event_name }}\n"
    )
    (tmp_path / "ticket_email.txt").write_text("Hello {{ holder_name }}, see attachment.\n")
    (tmp_path / "ticket_email.html").write_text("<p>Hello {{ holder_name }}</p>")
    return tmp_path


class TestTemplateRendererInit:
    """Tests for TemplateRenderer initialization."""

    def test_init_with_custom_dir(self, temp_template_dir):
        """Test initialization with custom template directory."""
        renderer = TemplateRenderer(template_dir=temp_template_dir)

        assert renderer.template_dir == temp_template_dir
        assert renderer.env is not None

    def test_default_dir_from_config(self, mock_config):
        """Test the packaged templates are found through the config."""
        renderer = TemplateRenderer(mock_config.TEMPLATE_DIR)

        context = {"event_name": "Summer Fest", "holder_name": "Ana", "ticket_number": "TCK-0001"}

        assert renderer.render_subject(context) == "Your Ticket for Summer Fest"
        assert renderer.render_html(context) is None


class TestRendering:
    """Tests for rendering the three template variants."""

    def test_subject_collapsed_to_one_line(self, temp_template_dir):
        """Test subject newlines never reach the header."""
        renderer = TemplateRenderer(temp_template_dir)

        assert renderer.render_subject(CONTEXT) == "Ticket TCK-0001 for Summer Fest"

    def test_text_and_html(self, temp_template_dir):
        """Test bodies render with the ticket context."""
        renderer = TemplateRenderer(temp_template_dir)

        assert renderer.render_text(CONTEXT) == "Hello Ana, see attachment."
        assert renderer.render_html(CONTEXT) == "<p>Hello Ana</p>"

    def test_html_is_autoescaped(self, temp_template_dir):
        """Test HTML templates escape context values."""
        renderer = TemplateRenderer(temp_template_dir)

        html = renderer.render_html({**CONTEXT, "holder_name": "<script>"})

        assert "&lt;script&gt;" in html

    def test_packaged_defaults(self, mock_config):
        """Test the shipped templates produce the default ticket email."""
        renderer = TemplateRenderer(mock_config.TEMPLATE_DIR)

        assert renderer.render_subject(CONTEXT) == "Your Ticket for Summer Fest"
        assert renderer.render_text(CONTEXT) == "Your ticket is attached."
        assert renderer.render_html(CONTEXT) is None


class TestFallbacks:
    """Tests for missing or broken templates."""

    def test_missing_templates_use_builtin_text(self, tmp_path):
        """Test an empty template directory still yields subject and text."""
        renderer = TemplateRenderer(tmp_path)

        assert renderer.render_subject({"event_name": None}) == "Your Ticket for Event"
        assert renderer.render_text(CONTEXT) == FALLBACK_TEXT
        assert renderer.render_html(CONTEXT) is None

    def test_broken_template_raises(self, tmp_path):
        """Test a template that fails at render time raises TemplateRenderError."""
        (tmp_path / "ticket_email.txt").write_text("{{ holder_name.missing() }}")
        renderer = TemplateRenderer(tmp_path)

        with pytest.raises(TemplateRenderError) as exc_info:
            renderer.render_text(CONTEXT)

        assert exc_info.value.template_name == "ticket_email.txt"
