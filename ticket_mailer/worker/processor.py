"""Job processor - one send_email attempt, claim to commit.

Drives a single job through its state machine:

    pending --claim--> processing --success--> completed
                                  --failure--> pending (retries left) | failed

All blocking store, filesystem and SMTP calls run in worker threads so the
event loop (and the HTTP surface sharing it) stays responsive.

Version: 3.0.0
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ticket_mailer.clients.smtp import SMTPDelivery
from ticket_mailer.config import WorkerConfig
from ticket_mailer.core.exceptions import (
    InvalidJobPayloadError,
    NoCredentialAvailableError,
    QueueStoreError,
    TicketMailerError,
    TicketNotFoundError,
)
from ticket_mailer.core.logger import get_logger, log_context
from ticket_mailer.database.store import JobStore
from ticket_mailer.models.credential import EmailCredential
from ticket_mailer.models.job import Job, SendEmailPayload
from ticket_mailer.models.ticket import Ticket
from ticket_mailer.worker.attachments import AttachmentResolver
from ticket_mailer.worker.composer import MessageComposer
from ticket_mailer.worker.credentials import CredentialSelector

logger = get_logger(__name__)


class JobOutcome(str, Enum):
    """Result of handing one candidate job to the processor."""

    COMPLETED = "completed"
    RETRY = "retry"
    FAILED = "failed"
    SKIPPED = "skipped"


class JobProcessor:
    """Processes claimed send_email jobs.

    Attributes:
        store: Shared job store.
        delivery: SMTP transport.
        credentials: Sending credential selector.
        attachments: Attachment resolver.
        composer: Outgoing message builder.
        retry_backoff: Seconds a re-pended job waits before it is eligible.
    """

    def __init__(
        self,
        store: JobStore,
        delivery: SMTPDelivery,
        credentials: CredentialSelector,
        attachments: AttachmentResolver,
        composer: MessageComposer,
        config: WorkerConfig,
    ) -> None:
        self.store = store
        self.delivery = delivery
        self.credentials = credentials
        self.attachments = attachments
        self.composer = composer
        self.retry_backoff = config.RETRY_BACKOFF_SECONDS

    async def process_job(self, job: Job) -> bool:
        """Run one delivery attempt for a candidate job.

        Returns:
            True only if the email was delivered in this attempt.
        """
        return await self.handle(job) is JobOutcome.COMPLETED

    async def handle(self, job: Job) -> JobOutcome:
        """Claim, deliver and commit one job, reporting what happened.

        Per-job errors never escape: they are recorded on the job row (or
        logged, when the store itself is failing).
        """
        try:
            claimed = await asyncio.to_thread(self.store.claim_job, job.id)
        except QueueStoreError as e:
            logger.error(f"Claim failed for job #{job.id}: {e}")
            return JobOutcome.SKIPPED

        if claimed is None:
            logger.info(f"Job #{job.id} already claimed by another worker, skipping")
            return JobOutcome.SKIPPED

        ctx = log_context(
            "process_job",
            job_id=claimed.id,
            recipient=claimed.data.get("recipientEmail"),
            attempt=claimed.attempt_label,
        )
        logger.info(f"Starting: {ctx}")

        try:
            ticket, credential, message_id = await self._attempt(claimed)
        except Exception as e:
            return await self._commit_failure(claimed, e, ctx)

        await self._commit_success(claimed, ticket, credential, message_id, ctx)
        return JobOutcome.COMPLETED

    async def _attempt(self, job: Job) -> tuple[Ticket | None, EmailCredential, str]:
        """Resolve inputs and deliver. Raises on any failure."""
        try:
            payload = SendEmailPayload.model_validate(job.data)
        except ValidationError as e:
            raise InvalidJobPayloadError(f"Invalid job data: {e.error_count()} field error(s)") from e

        ticket = await self._resolve_ticket(payload)

        credential = await asyncio.to_thread(self.credentials.select)
        if credential is None:
            raise NoCredentialAvailableError()

        attachment = await asyncio.to_thread(self.attachments.resolve, payload, ticket)
        message = self.composer.compose(payload, ticket, attachment)

        logger.debug(
            f"Delivering job #{job.id} via {credential.smtp_server}:{credential.smtp_port} "
            f"to {message.recipient}"
        )
        message_id = await asyncio.to_thread(self.delivery.deliver, credential, message)
        return ticket, credential, message_id

    async def _resolve_ticket(self, payload: SendEmailPayload) -> Ticket | None:
        if not payload.ticket_id:
            if payload.recipient_email:
                return None
            raise TicketNotFoundError("Ticket ID not found in job data")

        ticket = await asyncio.to_thread(self.store.get_ticket, payload.ticket_id)
        if ticket is None:
            raise TicketNotFoundError("Ticket not found")
        return ticket

    async def _commit_success(
        self,
        job: Job,
        ticket: Ticket | None,
        credential: EmailCredential,
        message_id: str,
        ctx: str,
    ) -> None:
        """Record a delivered attempt: usage, job result, ticket status.

        The email is already out at this point, so store failures here are
        logged and never turn into a retry.
        """
        result: dict[str, Any] = {
            "success": True,
            "messageId": message_id,
            "sentAt": datetime.now(timezone.utc).isoformat(),
            "credentialId": credential.id,
        }

        try:
            await asyncio.to_thread(self.store.increment_credential_usage, credential.id)
        except QueueStoreError as e:
            logger.error(f"Usage increment failed for credential {credential.email}: {e}")

        try:
            updated = await asyncio.to_thread(self.store.complete_job, job.id, result)
            if not updated:
                logger.warning(f"Job #{job.id} was no longer processing when completing")
        except QueueStoreError as e:
            logger.error(f"Delivered but could not complete job #{job.id}: {e}")

        if ticket is not None:
            try:
                await asyncio.to_thread(self.store.mark_ticket_sent, ticket.id)
            except QueueStoreError as e:
                logger.error(f"Delivered but could not update ticket {ticket.id}: {e}")

        logger.info(f"COMPLETED: {ctx} | message_id={message_id}")

    async def _commit_failure(self, job: Job, error: Exception, ctx: str) -> JobOutcome:
        """Re-pend or permanently fail a job after a failed attempt."""
        message = str(error) or type(error).__name__
        terminal = job.retries >= job.max_retries
        transient = getattr(error, "is_transient", False)
        logger.error(
            f"FAILED: {ctx} | transient={transient} | Error: {message}",
            exc_info=not isinstance(error, TicketMailerError),
        )

        try:
            await asyncio.to_thread(
                self.store.fail_job,
                job.id,
                message,
                terminal,
                self.retry_backoff,
            )
        except QueueStoreError as e:
            logger.error(f"Could not record failure for job #{job.id}: {e}")

        if terminal:
            logger.critical(
                f"PERMANENTLY FAILED: {ctx} | max_retries_exceeded={job.max_retries} | "
                f"error={message[:100]}"
            )
            return JobOutcome.FAILED

        logger.warning(f"SCHEDULED RETRY: {ctx} | backoff_secs={self.retry_backoff}")
        return JobOutcome.RETRY
