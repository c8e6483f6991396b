"""Core module for the ticket mailer worker.

Provides exceptions and logging configuration.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from ticket_mailer.core.exceptions import (
    AttachmentMissingError,
    ConfigError,
    InvalidJobPayloadError,
    JobProcessingError,
    NoCredentialAvailableError,
    PollQueryError,
    QueueStoreError,
    TemplateRenderError,
    TicketMailerError,
    TicketNotFoundError,
    TransportError,
    TransportRejectedError,
    TransportTimeoutError,
)
from ticket_mailer.core.logger import (
    get_logger,
    log_context,
    setup_logging,
)

__all__ = [
    # Exceptions
    "TicketMailerError",
    "ConfigError",
    "QueueStoreError",
    "PollQueryError",
    "JobProcessingError",
    "TicketNotFoundError",
    "NoCredentialAvailableError",
    "AttachmentMissingError",
    "InvalidJobPayloadError",
    "TransportError",
    "TransportTimeoutError",
    "TransportRejectedError",
    "TemplateRenderError",
    # Logging
    "get_logger",
    "setup_logging",
    "log_context",
]
