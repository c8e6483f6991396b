"""Models module for the ticket mailer worker.

Defines Pydantic v2 data models for jobs, tickets, credentials, outgoing
messages and statistics.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from ticket_mailer.models.credential import EmailCredential
from ticket_mailer.models.job import Job, JobStatus, JobType, SendEmailPayload
from ticket_mailer.models.message import Attachment, OutgoingEmail
from ticket_mailer.models.stats import JobStats, PollSummary
from ticket_mailer.models.ticket import TICKET_STATUS_SENT, Ticket

__all__ = [
    # Enums
    "JobStatus",
    "JobType",
    # Records
    "Job",
    "SendEmailPayload",
    "Ticket",
    "TICKET_STATUS_SENT",
    "EmailCredential",
    # Messages
    "Attachment",
    "OutgoingEmail",
    # Stats
    "JobStats",
    "PollSummary",
]
