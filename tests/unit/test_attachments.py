"""Unit tests for AttachmentResolver.

Covers inline base64 payloads and the shared-directory fallback.

Author: Odiseo
Version: 2.0.0
"""

from __future__ import annotations

import pytest

from ticket_mailer.core.exceptions import AttachmentMissingError
from ticket_mailer.models import SendEmailPayload, Ticket
from ticket_mailer.worker.attachments import AttachmentResolver, decode_base64


class TestDecodeBase64:
    """Tests for the base64 helper."""

    def test_tolerates_whitespace_and_padding(self):
        """Test wrapped lines and stripped padding still decode."""
        assert decode_base64("aGVs\nbG8") == b"hello"

    def test_rejects_garbage(self):
        """Test invalid characters raise ValueError."""
        with pytest.raises(ValueError):
            decode_base64("not*base64!")


class TestInlineAttachment:
    """Tests for attachments carried in the job payload."""

    def test_inline_decoded(self, attachment_b64, attachment_bytes):
        """Test inline content and filename are used as-is."""
        payload = SendEmailPayload(attachmentBase64=attachment_b64, attachmentFilename="t.png")

        attachment = AttachmentResolver().resolve(payload, None)

        assert attachment.filename == "t.png"
        assert attachment.content == attachment_bytes

    def test_inline_without_filename(self, attachment_b64):
        """Test inline content without a filename is incomplete."""
        payload = SendEmailPayload(attachmentBase64=attachment_b64)

        with pytest.raises(AttachmentMissingError, match="Attachment data missing in job"):
            AttachmentResolver().resolve(payload, None)

    def test_inline_undecodable(self):
        """Test corrupt base64 is reported as a missing attachment."""
        payload = SendEmailPayload(attachmentBase64="%%%%", attachmentFilename="t.png")

        with pytest.raises(AttachmentMissingError, match="could not be decoded"):
            AttachmentResolver().resolve(payload, None)


class TestPathAttachment:
    """Tests for attachments read from ATTACHMENT_DIR."""

    def test_reads_ticket_image(self, tmp_path, sample_ticket):
        """Test the ticket's image_url is read from the shared directory."""
        (tmp_path / "ticket-1.png").write_bytes(b"image-bytes")

        attachment = AttachmentResolver(tmp_path).resolve(SendEmailPayload(), sample_ticket)

        assert attachment.filename == "ticket-1.png"
        assert attachment.content == b"image-bytes"

    def test_directory_components_ignored(self, tmp_path):
        """Test a traversal attempt resolves inside the shared directory."""
        (tmp_path / "passwd").write_bytes(b"inside")
        ticket = Ticket(id="t", image_url="../../etc/passwd")

        attachment = AttachmentResolver(tmp_path).resolve(SendEmailPayload(), ticket)

        assert attachment.content == b"inside"

    def test_missing_file(self, tmp_path, sample_ticket):
        """Test an absent file raises AttachmentMissingError."""
        with pytest.raises(AttachmentMissingError, match="not readable"):
            AttachmentResolver(tmp_path).resolve(SendEmailPayload(), sample_ticket)

    def test_path_source_disabled_without_dir(self, sample_ticket):
        """Test image_url is ignored when no directory is configured."""
        with pytest.raises(AttachmentMissingError, match="Attachment data missing in job"):
            AttachmentResolver(None).resolve(SendEmailPayload(), sample_ticket)

    def test_inline_preferred_over_path(self, tmp_path, sample_ticket, attachment_b64, attachment_bytes):
        """Test inline content wins when both sources exist."""
        (tmp_path / "ticket-1.png").write_bytes(b"from-disk")
        payload = SendEmailPayload(attachmentBase64=attachment_b64, attachmentFilename="inline.png")

        attachment = AttachmentResolver(tmp_path).resolve(payload, sample_ticket)

        assert attachment.content == attachment_bytes
