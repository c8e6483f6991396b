"""Sending credential selection.

Picks the first eligible credential in store order. No balancing is
attempted; quota is the only constraint.
"""

from __future__ import annotations

from ticket_mailer.core.logger import get_logger
from ticket_mailer.database.store import JobStore
from ticket_mailer.models.credential import EmailCredential

logger = get_logger(__name__)


class CredentialSelector:
    """First-match selector over the stored email credentials."""

    def __init__(self, store: JobStore) -> None:
        self.store = store

    def select(self) -> EmailCredential | None:
        """Return an active credential under its daily limit, or None.

        Raises:
            QueueStoreError: If the credential query fails.
        """
        credential = self.store.find_available_credential()
        if credential is None:
            logger.warning("No email credential with remaining quota")
            return None

        if not credential.is_eligible:
            logger.error(
                f"Store returned ineligible credential {credential.email} "
                f"(active={credential.is_active}, usage={credential.quota_label})"
            )
            return None

        logger.info(f"Using credential: {credential.email} ({credential.quota_label})")
        return credential
