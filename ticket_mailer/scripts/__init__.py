"""Operator scripts for the ticket mailer."""
