"""Outgoing message models.

A composed message is independent of the SMTP identity that sends it;
the sender address is taken from the selected credential at delivery.

Author: Odiseo
Created: 2025-10-18
Version: 1.0.0
"""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class Attachment(BaseModel):
    """Binary attachment carried by an outgoing message."""

    filename: str = Field(..., min_length=1, description="Attachment file name")
    content: bytes = Field(..., description="Raw attachment bytes")

    @property
    def size_kb(self) -> float:
        return len(self.content) / 1024


class OutgoingEmail(BaseModel):
    """Fully composed email ready for delivery.

    Attributes:
        recipient: Recipient address.
        from_name: Sender display name.
        subject: Subject line.
        text_body: Plain-text body.
        html_body: Optional HTML alternative.
        attachments: Binary attachments.
    """

    recipient: EmailStr = Field(..., description="Recipient address")
    from_name: str = Field(..., description="Sender display name")
    subject: str = Field(..., min_length=1, max_length=998, description="Subject line")
    text_body: str = Field(..., description="Plain-text body")
    html_body: str | None = Field(default=None, description="HTML body")
    attachments: list[Attachment] = Field(default_factory=list, description="Attachments")
