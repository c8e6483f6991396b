"""Worker module for the ticket mailer.

Contains the poll loop and the per-job state machine.
"""

from ticket_mailer.worker.poller import EmailWorker, build_processor
from ticket_mailer.worker.processor import JobOutcome, JobProcessor

__all__ = ["EmailWorker", "JobOutcome", "JobProcessor", "build_processor"]
