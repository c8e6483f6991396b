"""Message composition for send_email jobs.

Fills subject, bodies, sender name and recipient from the job payload,
using the rendered ticket templates for anything the payload omits.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ticket_mailer.core.exceptions import InvalidJobPayloadError
from ticket_mailer.core.logger import get_logger
from ticket_mailer.models.job import SendEmailPayload
from ticket_mailer.models.message import Attachment, OutgoingEmail
from ticket_mailer.models.ticket import Ticket
from ticket_mailer.templates.renderer import TemplateRenderer

logger = get_logger(__name__)


class MessageComposer:
    """Builds the outgoing email of a send_email job."""

    def __init__(self, renderer: TemplateRenderer, default_from_name: str = "Admin") -> None:
        self.renderer = renderer
        self.default_from_name = default_from_name

    @staticmethod
    def template_context(ticket: Ticket | None) -> dict[str, Any]:
        """Variables available to the ticket templates."""
        if ticket is None:
            return {"event_name": "Event", "ticket_number": None, "holder_name": "Unknown"}
        return {
            "event_name": ticket.event_name or "Event",
            "ticket_number": ticket.ticket_number,
            "holder_name": ticket.holder_name,
        }

    def compose(
        self,
        payload: SendEmailPayload,
        ticket: Ticket | None,
        attachment: Attachment,
    ) -> OutgoingEmail:
        """Compose the message for one job attempt.

        Raises:
            InvalidJobPayloadError: If no valid recipient can be determined.
            TemplateRenderError: If a default template fails to render.
        """
        recipient = payload.recipient_email or (ticket.holder_email if ticket else None)
        if not recipient:
            raise InvalidJobPayloadError("Recipient email not found in job data or ticket")

        context = self.template_context(ticket)
        subject = payload.subject or self.renderer.render_subject(context)
        text_body = payload.text_body or self.renderer.render_text(context)
        html_body = payload.html_body or self.renderer.render_html(context)

        try:
            return OutgoingEmail(
                recipient=recipient,
                from_name=payload.from_name or self.default_from_name,
                subject=subject,
                text_body=text_body,
                html_body=html_body,
                attachments=[attachment],
            )
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise InvalidJobPayloadError(f"Invalid email fields: {fields}") from e
