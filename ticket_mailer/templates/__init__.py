"""Templates module for the ticket mailer worker.

Contains the Jinja2 renderer and the default ticket email templates.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from ticket_mailer.templates.renderer import TemplateRenderer

__all__ = ["TemplateRenderer"]
