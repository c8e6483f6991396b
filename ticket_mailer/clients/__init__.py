"""Clients module for the ticket mailer worker.

Contains the SMTP delivery integration.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from ticket_mailer.clients.smtp import SMTPDelivery, build_mime_message

__all__ = ["SMTPDelivery", "build_mime_message"]
