#!/usr/bin/env python3
"""Inspect stored email credentials and optionally verify them.

Lists every credential with its quota usage and eligibility. With
``--verify``, opens a verified SMTP session (TLS, login, NOOP) for each
active credential.

Usage:
    python -m ticket_mailer.scripts.check_credentials
    python -m ticket_mailer.scripts.check_credentials --verify
"""

from __future__ import annotations

import argparse
import sys

from ticket_mailer.clients.smtp import SMTPDelivery
from ticket_mailer.config import WorkerConfig
from ticket_mailer.core.logger import get_logger, mask_database_url, setup_logging
from ticket_mailer.database.store import JobStore
from ticket_mailer.models.credential import EmailCredential

logger = get_logger(__name__)


def print_header() -> None:
    """Print script header."""
    print("\n" + "=" * 80)
    print("  📧 Ticket Mailer Credential Check")
    print("=" * 80)


def print_footer() -> None:
    """Print script footer."""
    print("=" * 80 + "\n")


def print_credentials(credentials: list[EmailCredential]) -> None:
    """Print one line per credential (passwords never shown)."""
    print(f"\n📋 Stored credentials: {len(credentials)}")
    for cred in credentials:
        marker = "✅" if cred.is_eligible else ("⏸️ " if cred.is_active else "⛔")
        print(
            f"  {marker} {cred.email:<35} {cred.smtp_server}:{cred.smtp_port:<5} "
            f"usage {cred.quota_label}"
        )


def verify_credentials(config: WorkerConfig, credentials: list[EmailCredential]) -> bool:
    """Open a verified session for every active credential.

    Returns:
        True if all active credentials connected.
    """
    delivery = SMTPDelivery(config)
    active = [cred for cred in credentials if cred.is_active]
    if not active:
        print("\n❌ No active credentials to verify")
        return False

    print("\n🧪 Verifying SMTP sessions...")
    ok = True
    for cred in active:
        if delivery.validate_connection(cred):
            print(f"  ✅ {cred.email}")
        else:
            print(f"  ❌ {cred.email} (see log for details)")
            ok = False
    return ok


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        0 if the check passed, 1 otherwise.
    """
    parser = argparse.ArgumentParser(
        description="List stored email credentials and verify SMTP connectivity.",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Open a verified SMTP session for each active credential",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging output",
    )
    args = parser.parse_args(argv)

    setup_logging(
        log_level="DEBUG" if args.verbose else "INFO",
        console_level="DEBUG" if args.verbose else "WARNING",
        enable_file=False,
    )

    print_header()
    store = None
    exit_code = 0

    try:
        config = WorkerConfig()
        print(f"\n  Database: {mask_database_url(config.DATABASE_URL)} (schema {config.SCHEMA_NAME})")

        store = JobStore(config)
        credentials = store.list_credentials()
        print_credentials(credentials)

        if not any(cred.is_eligible for cred in credentials):
            print("\n⚠️  No credential currently has remaining quota")
            exit_code = 1

        if args.verify and not verify_credentials(config, credentials):
            exit_code = 1

    except Exception as e:
        print(f"\n❌ Credential check failed: {e}")
        logger.exception("Credential check failed")
        exit_code = 1

    finally:
        if store is not None:
            store.close()
        print_footer()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
