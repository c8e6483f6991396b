"""Email worker - poll loop and batch dispatch.

Periodically queries the shared queue for pending send_email jobs and hands
them one at a time to the JobProcessor. The same cycle can be run on demand
from the HTTP trigger; an asyncio.Lock keeps the two from overlapping.

Version: 3.0.0
"""

from __future__ import annotations

import asyncio
import signal
import sys

from ticket_mailer.clients.smtp import SMTPDelivery
from ticket_mailer.config import WorkerConfig
from ticket_mailer.core.exceptions import ConfigError, QueueStoreError
from ticket_mailer.core.logger import get_logger, setup_logging
from ticket_mailer.database.store import JobStore
from ticket_mailer.models.job import Job
from ticket_mailer.models.stats import PollSummary
from ticket_mailer.templates.renderer import TemplateRenderer
from ticket_mailer.worker.attachments import AttachmentResolver
from ticket_mailer.worker.composer import MessageComposer
from ticket_mailer.worker.credentials import CredentialSelector
from ticket_mailer.worker.processor import JobOutcome, JobProcessor

logger = get_logger(__name__)


def build_processor(config: WorkerConfig, store: JobStore) -> JobProcessor:
    """Wire a JobProcessor with the production collaborators."""
    renderer = TemplateRenderer(config.TEMPLATE_DIR)
    return JobProcessor(
        store=store,
        delivery=SMTPDelivery(config),
        credentials=CredentialSelector(store),
        attachments=AttachmentResolver(config.ATTACHMENT_DIR),
        composer=MessageComposer(renderer, config.DEFAULT_FROM_NAME),
        config=config,
    )


class EmailWorker:
    """Send_email queue poller.

    Runs one cycle immediately, then one every ``POLL_INTERVAL`` ms until
    stopped. Jobs inside a cycle are processed sequentially, so at most one
    job per instance is in flight.
    """

    def __init__(
        self,
        config: WorkerConfig,
        store: JobStore,
        processor: JobProcessor | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.processor = processor or build_processor(config, store)

        self.running = False
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()

        self.cycle_count = 0
        self.processed_count = 0
        self.retry_count = 0
        self.failed_count = 0
        self.skipped_count = 0

    async def run(self) -> None:
        """Main worker loop - poll, then wait for the interval or a stop."""
        self.running = True
        self._stop_event.clear()

        logger.info("Starting email worker loop...")
        logger.info(
            f"Worker Configuration: "
            f"poll_interval={self.config.POLL_INTERVAL}ms | "
            f"batch_size={self.config.WORKER_BATCH_SIZE} | "
            f"job_delay={self.config.WORKER_JOB_DELAY_SECONDS}s | "
            f"retry_backoff={self.config.RETRY_BACKOFF_SECONDS}s"
        )

        while self.running:
            try:
                await self.poll_jobs()
            except Exception:
                logger.error(f"Cycle #{self.cycle_count}: Unexpected error in worker loop", exc_info=True)

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.config.poll_interval_seconds,
                )
            except asyncio.TimeoutError:
                pass

        logger.info("Email worker loop stopped")
        self._print_stats()

    def stop(self) -> None:
        """Stop scheduling new cycles. An in-flight cycle finishes its job."""
        if self.running:
            logger.info("Stopping email worker...")
        self.running = False
        self._stop_event.set()

    async def poll_jobs(self) -> PollSummary:
        """Run one poll cycle, waiting for any cycle already in progress."""
        async with self._lock:
            self.cycle_count += 1
            return await self._poll_once()

    async def _poll_once(self) -> PollSummary:
        summary = PollSummary()

        try:
            jobs: list[Job] = await asyncio.to_thread(
                self.store.find_pending_jobs,
                self.config.WORKER_BATCH_SIZE,
            )
        except QueueStoreError as e:
            logger.error(f"Polling error: {e}")
            summary.error = str(e)
            return summary

        summary.found = len(jobs)
        if not jobs:
            logger.debug("No pending email jobs")
            return summary

        logger.info(f"Found {len(jobs)} pending email jobs")

        for index, job in enumerate(jobs):
            if index and self.config.WORKER_JOB_DELAY_SECONDS:
                await asyncio.sleep(self.config.WORKER_JOB_DELAY_SECONDS)

            try:
                outcome = await self.processor.handle(job)
            except Exception:
                logger.exception(f"Unexpected error handling job #{job.id}, continuing with batch")
                outcome = JobOutcome.SKIPPED
            self._record(outcome, summary)

        logger.info(
            f"Cycle #{self.cycle_count} done: {summary.succeeded} sent, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )
        return summary

    def _record(self, outcome: JobOutcome, summary: PollSummary) -> None:
        if outcome is JobOutcome.COMPLETED:
            summary.succeeded += 1
            self.processed_count += 1
        elif outcome is JobOutcome.SKIPPED:
            summary.skipped += 1
            self.skipped_count += 1
        else:
            summary.failed += 1
            if outcome is JobOutcome.RETRY:
                self.retry_count += 1
            else:
                self.failed_count += 1

    def _print_stats(self) -> None:
        """Print worker statistics on shutdown."""
        finished = self.processed_count + self.failed_count
        success_rate = (self.processed_count / finished * 100) if finished > 0 else 0

        logger.info("Email Worker Statistics:")
        logger.info(f"   Poll cycles: {self.cycle_count}")
        logger.info(f"   Successfully sent: {self.processed_count}")
        logger.info(f"   Scheduled for retry: {self.retry_count}")
        logger.info(f"   Permanently failed: {self.failed_count}")
        logger.info(f"   Skipped (claimed elsewhere): {self.skipped_count}")
        logger.info(f"   Success rate: {success_rate:.1f}%")


async def main() -> None:
    """Run the worker without the HTTP surface."""
    config = WorkerConfig()
    setup_logging(
        log_dir=config.LOG_DIR,
        log_level=config.LOG_LEVEL,
        console_level=config.LOG_LEVEL,
        enable_file=config.LOG_TO_FILE,
        max_size_mb=config.LOG_MAX_SIZE_MB,
        backup_count=config.LOG_BACKUP_COUNT,
        settings=config,
    )

    try:
        config.validate_database_config()
        store = JobStore(config)
    except (ConfigError, QueueStoreError) as e:
        logger.error(f"Failed to connect to job store: {e}")
        sys.exit(1)

    worker = EmailWorker(config, store)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.run()
    finally:
        store.close()
        logger.info("Email worker stopped cleanly")
