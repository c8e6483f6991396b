"""Database module for the ticket mailer worker.

Contains the PostgreSQL-backed job store.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from ticket_mailer.database.store import JobStore

__all__ = ["JobStore"]
