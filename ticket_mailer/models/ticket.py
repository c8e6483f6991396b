"""Ticket model.

Tickets are owned by the main application; the worker only reads them
and advances their status to ``sent``.

Author: Odiseo
Created: 2025-10-18
Version: 1.0.0
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

TICKET_STATUS_SENT = "sent"


class Ticket(BaseModel):
    """Ticket record joined with its parent event name.

    Attributes:
        id: Ticket ID.
        ticket_number: Display number printed on the ticket.
        event_id: Parent event ID.
        event_name: Parent event name (None when the event is gone).
        status: Ticket status managed by the main application.
        image_url: Stored ticket image reference.
        ticket_details: Holder details (``name``, ``email``...).
    """

    id: str = Field(..., description="Ticket ID")
    ticket_number: str | None = Field(default=None, description="Display number")
    event_id: str | None = Field(default=None, description="Parent event ID")
    event_name: str | None = Field(default=None, description="Parent event name")
    status: str | None = Field(default=None, description="Ticket status")
    image_url: str | None = Field(default=None, description="Ticket image reference")
    ticket_details: dict[str, Any] = Field(default_factory=dict, description="Holder details")

    model_config = {"from_attributes": True, "coerce_numbers_to_str": True}

    @property
    def holder_email(self) -> str | None:
        return self.ticket_details.get("email") or None

    @property
    def holder_name(self) -> str:
        return self.ticket_details.get("name") or "Unknown"
