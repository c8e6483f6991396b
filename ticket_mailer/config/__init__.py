"""Configuration module for the ticket mailer worker.

Loads and validates settings from environment variables or .env file.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from ticket_mailer.config.settings import WorkerConfig

__all__ = ["WorkerConfig"]
