"""Unit tests for MessageComposer."""

from __future__ import annotations

import pytest

from ticket_mailer.core.exceptions import InvalidJobPayloadError
from ticket_mailer.models import SendEmailPayload, Ticket
from ticket_mailer.models.message import Attachment
from ticket_mailer.templates.renderer import TemplateRenderer
from ticket_mailer.worker.composer import MessageComposer


@pytest.fixture
def composer(mock_config) -> MessageComposer:
    return MessageComposer(TemplateRenderer(mock_config.TEMPLATE_DIR), default_from_name="Admin")


@pytest.fixture
def attachment() -> Attachment:
    return Attachment(filename="ticket.png", content=b"png")


class TestCompose:
    """Tests for recipient resolution and defaults."""

    def test_recipient_from_ticket_details(self, composer, sample_ticket, attachment):
        """Test ticket holder email is used when the payload has none."""
        payload = SendEmailPayload(ticketId="ticket-1")

        message = composer.compose(payload, sample_ticket, attachment)

        assert message.recipient == "ana@example.com"
        assert message.subject == "Your Ticket for Summer Fest"
        assert message.attachments == [attachment]

    def test_payload_recipient_wins(self, composer, sample_ticket, attachment):
        """Test recipientEmail overrides the ticket holder."""
        payload = SendEmailPayload(ticketId="ticket-1", recipientEmail="other@example.com")

        assert composer.compose(payload, sample_ticket, attachment).recipient == "other@example.com"

    def test_blank_fields_fall_back_to_defaults(self, composer, sample_ticket, attachment):
        """Test empty strings in the payload behave like absent fields."""
        payload = SendEmailPayload.model_validate(
            {"ticketId": "ticket-1", "subject": "  ", "fromName": "", "textBody": ""}
        )

        message = composer.compose(payload, sample_ticket, attachment)

        assert message.subject == "Your Ticket for Summer Fest"
        assert message.from_name == "Admin"
        assert message.text_body == "Your ticket is attached."

    def test_event_name_missing(self, composer, attachment):
        """Test a ticket without an event gets the generic subject."""
        ticket = Ticket(id="t-2", ticket_details={"email": "bob@example.com"})

        message = composer.compose(SendEmailPayload(ticketId="t-2"), ticket, attachment)

        assert message.subject == "Your Ticket for Event"

    def test_no_recipient_anywhere(self, composer, attachment):
        """Test a ticket without holder email and no payload recipient."""
        ticket = Ticket(id="t-3", ticket_details={})

        with pytest.raises(InvalidJobPayloadError):
            composer.compose(SendEmailPayload(ticketId="t-3"), ticket, attachment)

    def test_invalid_recipient_address(self, composer, sample_ticket, attachment):
        """Test a malformed address is reported as an invalid payload."""
        payload = SendEmailPayload(ticketId="ticket-1", recipientEmail="not-an-address")

        with pytest.raises(InvalidJobPayloadError, match="recipient"):
            composer.compose(payload, sample_ticket, attachment)
