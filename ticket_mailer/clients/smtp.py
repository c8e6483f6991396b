"""SMTP delivery strategy.

Sends a composed message with a stored credential over a fresh SMTP
session and falls back from the STARTTLS submission port to the implicit
TLS port when the primary connection times out.

Features:
- Security mode implied by port (465 implicit TLS, otherwise STARTTLS)
- Certificate and hostname verification with a minimum TLS version
- Bounded connect/greeting and socket timeouts
- Handshake verification (NOOP) before sending
- One connection per attempt, always released

Author: Odiseo
Version: 3.0.0
"""

from __future__ import annotations

import errno
import smtplib
import ssl
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

from ticket_mailer.config import WorkerConfig
from ticket_mailer.core.exceptions import (
    TransportError,
    TransportRejectedError,
    TransportTimeoutError,
)
from ticket_mailer.core.logger import get_logger
from ticket_mailer.models.credential import EmailCredential
from ticket_mailer.models.message import OutgoingEmail

logger = get_logger(__name__)

_TLS_VERSIONS = {
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


def _is_timeout(error: BaseException) -> bool:
    """Whether an OS-level error is a connection timeout."""
    if isinstance(error, TimeoutError):
        return True
    return isinstance(error, OSError) and error.errno == errno.ETIMEDOUT


def build_mime_message(
    credential: EmailCredential, message: OutgoingEmail
) -> tuple[MIMEMultipart, str]:
    """Build the MIME tree for a message sent by a credential.

    Returns:
        The MIME message and its generated Message-ID.
    """
    domain = credential.email.rpartition("@")[2] or None
    message_id = make_msgid(domain=domain)

    msg = MIMEMultipart("mixed")
    msg["From"] = formataddr((message.from_name, credential.email))
    msg["To"] = message.recipient
    msg["Subject"] = message.subject
    msg["Message-ID"] = message_id

    body = MIMEMultipart("alternative")
    body.attach(MIMEText(message.text_body, "plain", "utf-8"))
    if message.html_body:
        body.attach(MIMEText(message.html_body, "html", "utf-8"))
    msg.attach(body)

    for attachment in message.attachments:
        part = MIMEApplication(attachment.content)
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        msg.attach(part)

    return msg, message_id


class SMTPDelivery:
    """SMTP delivery with port fallback.

    Each call to ``deliver`` opens its own session(s) and closes them
    before returning; nothing is pooled across jobs.

    Attributes:
        connect_timeout: Seconds allowed for TCP connect and server greeting.
        socket_timeout: Seconds allowed for any later socket operation.
        submission_port: STARTTLS port whose timeouts trigger the fallback.
        ssl_port: Implicit TLS port used by the fallback.
    """

    def __init__(self, config: WorkerConfig | None = None) -> None:
        """Initialize the delivery strategy.

        Args:
            config: Worker configuration (loads from environment if None).
        """
        config = config or WorkerConfig()
        self.connect_timeout = config.SMTP_CONNECT_TIMEOUT
        self.socket_timeout = config.SMTP_SOCKET_TIMEOUT
        self.submission_port = config.SMTP_SUBMISSION_PORT
        self.ssl_port = config.SMTP_SSL_PORT
        self.min_tls_version = _TLS_VERSIONS[config.SMTP_MIN_TLS_VERSION]

    def _ssl_context(self) -> ssl.SSLContext:
        """Verifying TLS context with the configured minimum version."""
        context = ssl.create_default_context()
        context.minimum_version = self.min_tls_version
        return context

    def deliver(self, credential: EmailCredential, message: OutgoingEmail) -> str:
        """Send a message, falling back to implicit TLS on submission-port timeout.

        Args:
            credential: Sending identity.
            message: Composed message.

        Returns:
            Message-ID of the sent message.

        Raises:
            TransportTimeoutError: Connection timed out (and the fallback, if
                any, failed the same way).
            TransportRejectedError: Server refused the session or message.
            TransportError: Any other transport failure.
        """
        try:
            return self.send(credential, message, credential.smtp_port)
        except TransportTimeoutError as e:
            if credential.smtp_port != self.submission_port:
                raise
            logger.warning(
                f"Port {self.submission_port} timeout on {credential.smtp_server} ({e}), "
                f"trying port {self.ssl_port}..."
            )

        return self.send(credential, message, self.ssl_port)

    def validate_connection(self, credential: EmailCredential) -> bool:
        """Open and close a verified session on the credential's own port.

        Returns:
            True if connect, TLS, login and NOOP all succeeded.
        """
        try:
            smtp = self.open_session(credential, credential.smtp_port)
        except TransportError as e:
            logger.error(f"SMTP connection validation failed for {credential.email}: {e}")
            return False

        self._close_session(smtp)
        logger.info(f"SMTP connection validated for {credential.email}")
        return True

    def send(self, credential: EmailCredential, message: OutgoingEmail, port: int) -> str:
        """Send a message over one SMTP session on the given port.

        Returns:
            Message-ID of the sent message.
        """
        smtp = self.open_session(credential, port)
        try:
            msg, message_id = build_mime_message(credential, message)
            logger.info(f"Sending email to {message.recipient}...")
            try:
                smtp.send_message(
                    msg,
                    from_addr=credential.email,
                    to_addrs=[message.recipient],
                )
            except (
                smtplib.SMTPRecipientsRefused,
                smtplib.SMTPSenderRefused,
                smtplib.SMTPDataError,
            ) as e:
                raise TransportRejectedError(f"Message rejected by {credential.smtp_server}: {e}") from e
            except (smtplib.SMTPException, OSError) as e:
                raise TransportError(
                    f"Failed to send email to {message.recipient}: {e}",
                    is_transient=True,
                ) from e

            logger.info(f"Email sent - Message ID: {message_id}")
            return message_id
        finally:
            self._close_session(smtp)

    def open_session(self, credential: EmailCredential, port: int) -> smtplib.SMTP:
        """Connect, secure, authenticate and verify an SMTP session.

        Args:
            credential: Sending identity providing host and login.
            port: Port to connect to; the SSL port means implicit TLS.

        Returns:
            Authenticated, verified SMTP session. The caller must close it.

        Raises:
            TransportTimeoutError: Connect, greeting or handshake timed out.
            TransportRejectedError: TLS or authentication was refused.
            TransportError: Any other connection failure.
        """
        host = credential.smtp_server
        implicit_tls = port == self.ssl_port
        context = self._ssl_context()

        logger.info(f"Creating transport: {host}:{port} (secure: {implicit_tls})")
        try:
            if implicit_tls:
                smtp = smtplib.SMTP_SSL(host, port, timeout=self.connect_timeout, context=context)
            else:
                smtp = smtplib.SMTP(host, port, timeout=self.connect_timeout)
        except (smtplib.SMTPException, OSError) as e:
            raise self._connection_error(host, port, e) from e

        try:
            if smtp.sock is not None:
                smtp.sock.settimeout(self.socket_timeout)

            if not implicit_tls:
                smtp.ehlo()
                if not smtp.has_extn("starttls"):
                    raise TransportRejectedError(f"{host}:{port} does not offer STARTTLS")
                smtp.starttls(context=context)
                smtp.ehlo()

            if credential.username:
                smtp.login(credential.username, credential.password)

            logger.debug("Verifying SMTP connection...")
            code, _ = smtp.noop()
            if code != 250:
                raise TransportRejectedError(f"SMTP verification failed on {host}:{port} (code {code})")
            logger.debug(f"SMTP verified on {host}:{port}")
            return smtp

        except TransportError:
            self._close_session(smtp)
            raise
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            self._close_session(smtp)
            raise self._connection_error(host, port, e) from e

    @staticmethod
    def _connection_error(host: str, port: int, error: BaseException) -> TransportError:
        """Map a connection-phase exception onto the transport error taxonomy."""
        if _is_timeout(error):
            return TransportTimeoutError(f"Connection timeout to {host}:{port}: {error}")
        if isinstance(error, (smtplib.SMTPAuthenticationError, smtplib.SMTPResponseException, ssl.SSLError)):
            return TransportRejectedError(f"Connection refused by {host}:{port}: {error}")
        return TransportError(
            f"Failed to connect to SMTP server {host}:{port}: {error}",
            is_transient=True,
        )

    @staticmethod
    def _close_session(smtp: smtplib.SMTP) -> None:
        """Close an SMTP session, dropping the socket if QUIT fails."""
        try:
            smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.debug(f"Error closing SMTP connection (non-critical): {e}")
            smtp.close()
