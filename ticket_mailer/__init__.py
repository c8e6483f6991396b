"""Ticket Mailer - Background worker delivering queued ticket emails.

Consumes ``send_email`` jobs from a shared PostgreSQL job queue:
- Polls pending jobs (priority first, then oldest first)
- Claims each job atomically before any network I/O
- Picks the first credential with remaining daily quota
- Delivers over SMTP (STARTTLS on 587, implicit TLS fallback on 465)
- Re-pends failed jobs until their retry ceiling, then fails them

Architecture:
    - PostgreSQL tables shared with the producer (jobs, tickets, email_credentials)
    - Poll loop on an asyncio event loop, blocking I/O in worker threads
    - FastAPI reporting surface (/, /health, /stats, /trigger)
    - Jinja2 templates for default subject and bodies

Modules:
    - core: Exceptions, logger
    - config: Pydantic v2 settings
    - models: Job, ticket, credential and message models
    - clients: SMTP delivery strategy
    - database: Job store (PostgreSQL)
    - templates: Email template rendering (Jinja2)
    - worker: Poll loop and job state machine

Usage:
    # Headless worker
    python -m ticket_mailer.worker

    # Worker with HTTP surface
    ticket-mailer

Author: Odiseo
Created: 2025-10-18
Version: 1.0.0
"""

__version__ = "1.0.0"

# Clients
from ticket_mailer.clients import SMTPDelivery

# Configuration
from ticket_mailer.config import WorkerConfig

# Core utilities
from ticket_mailer.core import (
    ConfigError,
    JobProcessingError,
    QueueStoreError,
    TemplateRenderError,
    TicketMailerError,
    TransportError,
    get_logger,
)

# Database
from ticket_mailer.database import JobStore

# Models
from ticket_mailer.models import (
    EmailCredential,
    Job,
    JobStats,
    JobStatus,
    JobType,
    OutgoingEmail,
    PollSummary,
    SendEmailPayload,
    Ticket,
)

# Templates
from ticket_mailer.templates import TemplateRenderer

# Worker
from ticket_mailer.worker import EmailWorker, JobProcessor

__all__ = [
    # Version
    "__version__",
    # Core exceptions
    "TicketMailerError",
    "ConfigError",
    "QueueStoreError",
    "JobProcessingError",
    "TransportError",
    "TemplateRenderError",
    "get_logger",
    # Configuration
    "WorkerConfig",
    # Models - Enums
    "JobStatus",
    "JobType",
    # Models - Core
    "Job",
    "SendEmailPayload",
    "Ticket",
    "EmailCredential",
    "OutgoingEmail",
    "JobStats",
    "PollSummary",
    # Clients
    "SMTPDelivery",
    # Database
    "JobStore",
    # Templates
    "TemplateRenderer",
    # Worker
    "EmailWorker",
    "JobProcessor",
]
