"""Job queue models.

Defines the job status and type enums, the persisted job record and the
send_email payload schema validated at the point of consumption.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class JobStatus(str, Enum):
    """Job lifecycle status enumeration.

    Attributes:
        QUEUED: Created by the producer, not yet released to workers.
        PENDING: Eligible to be claimed by a worker.
        PROCESSING: Claimed by a worker, delivery in flight.
        COMPLETED: Delivered (terminal).
        ERROR: Producer-side error state, ignored by this worker.
        FAILED: Retry ceiling reached (terminal).
    """

    QUEUED = "queued"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    FAILED = "failed"


class JobType(str, Enum):
    """Job type tags sharing the queue.

    Only SEND_EMAIL jobs are consumed by this worker.
    """

    GENERATE_TICKET = "generate_ticket"
    VERIFY_TICKET = "verify_ticket"
    UPDATE_TICKET = "update_ticket"
    SEND_EMAIL = "send_email"


class Job(BaseModel):
    """Job queue record model.

    Represents one row of the shared ``jobs`` table. The row itself is the
    state of the job state machine; the worker keeps no other copy.

    Attributes:
        id: Opaque unique job ID.
        job_type: Job variant tag.
        data: Variant-specific payload document.
        status: Current lifecycle status.
        result: Success payload once completed.
        error: Last failure message.
        retries: Attempts started so far.
        max_retries: Retry ceiling.
        priority: Higher values are processed first.
        next_retry_at: Earliest time a re-pended job is eligible again.
        created_at: Enqueue timestamp.
        updated_at: Last update timestamp.
    """

    id: str = Field(..., description="Unique job ID")
    job_type: JobType = Field(..., description="Job variant tag")
    data: dict[str, Any] = Field(default_factory=dict, description="Job payload")
    status: JobStatus = Field(default=JobStatus.QUEUED, description="Lifecycle status")
    result: dict[str, Any] | None = Field(default=None, description="Success payload")
    error: str | None = Field(default=None, description="Last error message")
    retries: int = Field(default=0, ge=0, description="Attempts started")
    max_retries: int = Field(default=3, ge=0, description="Retry ceiling")
    priority: int = Field(default=0, description="Higher sorts first")
    next_retry_at: datetime | None = Field(default=None, description="Next eligible time")
    created_at: datetime = Field(..., description="Enqueue timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    model_config = {
        "from_attributes": True,
        "use_enum_values": False,
        "coerce_numbers_to_str": True,
    }

    @property
    def attempt_label(self) -> str:
        """Human readable ``retries/max_retries`` counter."""
        return f"{self.retries}/{self.max_retries}"


class SendEmailPayload(BaseModel):
    """Canonical ``data`` document of a send_email job.

    Field names follow the producer's camelCase JSON keys. Either
    ``ticketId`` or ``recipientEmail`` must be present.
    """

    ticket_id: str | None = Field(default=None, alias="ticketId")
    recipient_email: str | None = Field(default=None, alias="recipientEmail")
    subject: str | None = Field(default=None)
    text_body: str | None = Field(default=None, alias="textBody")
    html_body: str | None = Field(default=None, alias="htmlBody")
    from_name: str | None = Field(default=None, alias="fromName")
    attachment_base64: str | None = Field(default=None, alias="attachmentBase64")
    attachment_filename: str | None = Field(default=None, alias="attachmentFilename")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "str_strip_whitespace": True,
        "coerce_numbers_to_str": True,
    }

    @model_validator(mode="after")
    def blank_to_none(self) -> SendEmailPayload:
        """Normalize empty strings to None so defaults apply."""
        for name in type(self).model_fields:
            if getattr(self, name) == "":
                setattr(self, name, None)
        return self
