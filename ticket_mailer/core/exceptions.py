"""Custom exceptions for the ticket mailer worker.

Defines specific exception types for store, job and transport failures
so the job processor can translate each into persisted job state.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""


class TicketMailerError(Exception):
    """Base exception for all ticket mailer errors.

    Serves as the parent class for all custom exceptions in the worker,
    allowing consumers to catch every worker-related error with a single
    except block.

    Example:
        try:
            store.find_pending_jobs(limit=5)
        except TicketMailerError as e:
            logger.error(f"Worker error: {e}")
    """

    pass


class ConfigError(TicketMailerError):
    """Exception raised for configuration errors.

    Example:
        raise ConfigError("DATABASE_URL environment variable not set")
    """

    pass


class QueueStoreError(TicketMailerError):
    """Exception raised for job store operations.

    Indicates failures while reading or updating jobs, tickets or
    credentials in PostgreSQL.

    Attributes:
        message (str): Description of the database error.
    """


class PollQueryError(QueueStoreError):
    """Raised when the candidate job query of a poll cycle fails."""

    pass


class JobProcessingError(TicketMailerError):
    """Base class for failures of a single job attempt.

    Every subclass is retryable: the job goes back to ``pending`` until
    its retry ceiling is reached.
    """

    pass


class TicketNotFoundError(JobProcessingError):
    """The ticket referenced by the job does not exist."""

    pass


class NoCredentialAvailableError(JobProcessingError):
    """No active sending credential has quota left."""

    def __init__(self, message: str = "No available email credentials"):
        super().__init__(message)


class AttachmentMissingError(JobProcessingError):
    """Attachment content is absent, undecodable or unreadable."""

    pass


class InvalidJobPayloadError(JobProcessingError):
    """The job ``data`` document does not match the send_email schema."""

    pass


class TransportError(TicketMailerError):
    """Exception raised for SMTP connection/delivery failures.

    Attributes:
        message (str): Description of the SMTP error.
        is_transient (bool): Whether the error is temporary.

    Example:
        raise TransportError(
            "Connection reset by smtp.gmail.com:587",
            is_transient=True
        )
    """

    def __init__(self, message: str, is_transient: bool = False):
        """Initialize transport error.

        Args:
            message: Error description.
            is_transient: Whether error is temporary and retryable.
        """
        super().__init__(message)
        self.is_transient = is_transient


class TransportTimeoutError(TransportError):
    """Connection-class timeout while opening the SMTP session.

    This is the only error that triggers the implicit-TLS port fallback.
    """

    def __init__(self, message: str):
        super().__init__(message, is_transient=True)


class TransportRejectedError(TransportError):
    """The SMTP server refused the session, credentials or message."""

    pass


class TemplateRenderError(TicketMailerError):
    """Exception raised for template rendering failures.

    Attributes:
        message (str): Description of the template error.
        template_name (str, optional): Name of the template that failed.
    """

    def __init__(self, message: str, template_name: str | None = None):
        """Initialize template render error.

        Args:
            message: Error description.
            template_name: Optional name of the template that failed.
        """
        super().__init__(message)
        self.template_name = template_name
