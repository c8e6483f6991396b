"""Attachment resolution for send_email jobs.

Two sources are supported:

- inline: ``attachmentBase64`` + ``attachmentFilename`` carried in the job
  payload (general case, no shared filesystem needed);
- path: the ticket's ``image_url`` read from ``ATTACHMENT_DIR``, only when
  that directory is configured (producer and worker share storage).
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path, PurePosixPath

from ticket_mailer.core.exceptions import AttachmentMissingError
from ticket_mailer.core.logger import get_logger
from ticket_mailer.models.job import SendEmailPayload
from ticket_mailer.models.message import Attachment
from ticket_mailer.models.ticket import Ticket

logger = get_logger(__name__)


def decode_base64(content: str) -> bytes:
    """Decode base64 text, tolerating whitespace and missing padding.

    Raises:
        ValueError: If the content is not valid base64.
    """
    cleaned = "".join(content.split())
    padding_needed = -len(cleaned) % 4
    cleaned += "=" * padding_needed
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 content: {e}") from e


class AttachmentResolver:
    """Resolves the binary attachment of a send_email job.

    Attributes:
        attachment_dir: Shared directory for path-based attachments, or None.
    """

    def __init__(self, attachment_dir: str | Path | None = None) -> None:
        self.attachment_dir = Path(attachment_dir) if attachment_dir else None

    def resolve(self, payload: SendEmailPayload, ticket: Ticket | None) -> Attachment:
        """Load the attachment content for a job.

        Args:
            payload: Validated job payload.
            ticket: Referenced ticket, if the job has one.

        Returns:
            Attachment with its bytes loaded.

        Raises:
            AttachmentMissingError: If no source is available or it is unreadable.
        """
        if payload.attachment_base64:
            attachment = self._from_inline(payload)
        elif self.attachment_dir and ticket is not None and ticket.image_url:
            attachment = self._from_path(ticket.image_url, payload.attachment_filename)
        else:
            raise AttachmentMissingError("Attachment data missing in job")

        logger.info(f"Attachment loaded: {attachment.filename} ({attachment.size_kb:.2f} KB)")
        return attachment

    @staticmethod
    def _from_inline(payload: SendEmailPayload) -> Attachment:
        if not payload.attachment_filename:
            raise AttachmentMissingError("Attachment data missing in job")

        try:
            content = decode_base64(payload.attachment_base64 or "")
        except ValueError as e:
            raise AttachmentMissingError(f"Attachment could not be decoded: {e}") from e

        if not content:
            raise AttachmentMissingError("Attachment data missing in job")
        return Attachment(filename=payload.attachment_filename, content=content)

    def _from_path(self, image_url: str, filename: str | None) -> Attachment:
        # Only the file name is trusted; directories in the stored URL are ignored
        name = PurePosixPath(image_url.replace("\\", "/")).name
        if not name:
            raise AttachmentMissingError(f"Invalid attachment reference: {image_url}")

        path = self.attachment_dir / name
        try:
            content = path.read_bytes()
        except OSError as e:
            raise AttachmentMissingError(f"Attachment file not readable: {path} ({e.strerror})") from e

        if not content:
            raise AttachmentMissingError(f"Attachment file is empty: {path}")
        return Attachment(filename=filename or name, content=content)
