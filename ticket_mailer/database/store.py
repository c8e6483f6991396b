"""Job store for PostgreSQL operations.

Handles every read and write the worker performs on the shared queue:
candidate job lookup, atomic claiming, terminal status writes, ticket
lookups and credential quota accounting.

Features:
- Connection pooling with automatic validation
- Retry decorator for transient connection failures
- Conditional UPDATE ... RETURNING for race-free claiming
- Single-row atomic updates only (no multi-row transactions)

Author: Odiseo
Version: 3.0.0
"""

from __future__ import annotations

import json
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import psycopg2
from psycopg2 import pool
from psycopg2.extras import Json, RealDictCursor

from ticket_mailer.config import WorkerConfig
from ticket_mailer.core.exceptions import PollQueryError, QueueStoreError
from ticket_mailer.core.logger import get_logger
from ticket_mailer.models.credential import EmailCredential
from ticket_mailer.models.job import Job, JobStatus, JobType
from ticket_mailer.models.ticket import TICKET_STATUS_SENT, Ticket

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Retry Decorator
# =============================================================================
def with_db_retry(
    max_retries: int = 2,
    error_message: str = "Database operation failed",
    error_cls: type[QueueStoreError] = QueueStoreError,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for store operations with automatic retry on connection errors.

    The wrapped method receives a pooled connection as its first argument
    after ``self``; callers never pass it.

    Args:
        max_retries: Maximum attempts (default: 2).
        error_message: Base error message for failures.
        error_cls: QueueStoreError subclass raised on failure.

    Returns:
        Decorated function with retry logic.

    Example:
        @with_db_retry(error_message="Failed to claim job")
        def claim_job(self, conn, job_id):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self: JobStore, *args: Any, **kwargs: Any) -> T:
            last_error: Exception | None = None

            for attempt in range(max_retries):
                conn = None
                try:
                    conn = self._get_connection()
                    return func(self, conn, *args, **kwargs)
                except (psycopg2.OperationalError, psycopg2.InterfaceError, pool.PoolError) as e:
                    _rollback(conn)
                    last_error = e
                    if attempt < max_retries - 1:
                        logger.warning(
                            f"Connection error in {func.__name__}, "
                            f"retrying ({attempt + 1}/{max_retries})"
                        )
                        continue
                    logger.error(f"{error_message} after {max_retries} retries: {e}")
                except Exception as e:
                    _rollback(conn)
                    logger.error(f"{error_message}: {e}")
                    raise error_cls(f"{error_message}: {e}") from e
                finally:
                    if conn is not None:
                        self._return_connection(conn)

            raise error_cls(f"{error_message}: {last_error}") from last_error

        return wrapper

    return decorator


def _rollback(conn: psycopg2.extensions.connection | None) -> None:
    """Roll back a failed transaction; a dead connection cannot be rolled back."""
    if conn is None:
        return
    try:
        conn.rollback()
    except psycopg2.Error as e:
        logger.debug(f"Rollback skipped on broken connection: {e}")


def _validate_connection(conn: psycopg2.extensions.connection) -> bool:
    """Validate if a database connection is alive.

    Args:
        conn: PostgreSQL connection to validate

    Returns:
        True if connection is valid, False if dead/unusable
    """
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        conn.rollback()
        return True
    except (psycopg2.OperationalError, psycopg2.InterfaceError):
        return False


def _row_to_job(row: dict[str, Any]) -> Job:
    """Convert a ``jobs`` row into a Job, decoding JSON text columns."""
    row_dict = dict(row)
    for column in ("data", "result"):
        raw = row_dict.get(column)
        if raw and isinstance(raw, str):
            row_dict[column] = json.loads(raw)
    if row_dict.get("data") is None:
        row_dict["data"] = {}
    return Job(**row_dict)


class JobStore:
    """Queue store backed by PostgreSQL.

    Uses connection pooling for efficient database access. Every mutation
    is a single-row UPDATE committed immediately.
    """

    def __init__(self, config: WorkerConfig | None = None) -> None:
        """Initialize the store with a connection pool.

        Args:
            config: Worker configuration (loads from environment if None).

        Raises:
            QueueStoreError: If connection pool initialization fails.
        """
        self.config = config or WorkerConfig()
        self._pool: pool.SimpleConnectionPool | None = None
        self._schema = self.config.SCHEMA_NAME

        try:
            self._init_pool()
            logger.info(f"Job store initialized (schema={self._schema})")
        except Exception as e:
            logger.error(f"Failed to initialize job store: {e}")
            self._cleanup_pool()
            raise QueueStoreError(f"Connection pool initialization failed: {e}") from e

    def _init_pool(self) -> None:
        """Initialize PostgreSQL connection pool with configurable size."""
        min_conn = getattr(self.config, "DB_POOL_SIZE_MIN", 1)
        max_conn = getattr(self.config, "DB_POOL_SIZE_MAX", 5)

        logger.debug(f"Initializing PostgreSQL connection pool (min={min_conn}, max={max_conn})...")
        self._pool = pool.SimpleConnectionPool(
            minconn=min_conn,
            maxconn=max_conn,
            dsn=self.config.DATABASE_URL,
            cursor_factory=RealDictCursor,
        )

    def _cleanup_pool(self) -> None:
        """Clean up connection pool and release all connections."""
        if self._pool:
            try:
                self._pool.closeall()
                logger.debug("Connection pool closed successfully")
            except Exception as e:
                logger.warning(f"Error closing connection pool: {e}")
            finally:
                self._pool = None

    def _get_connection(self) -> psycopg2.extensions.connection:
        """Get connection from pool with automatic validation.

        Raises:
            QueueStoreError: If pool not initialized.
        """
        if not self._pool:
            raise QueueStoreError("Connection pool not initialized")

        conn = self._pool.getconn()

        if not _validate_connection(conn):
            self._pool.putconn(conn, close=True)
            logger.warning("Dead connection detected, retrieving fresh connection")
            conn = self._pool.getconn()

        return conn

    def _return_connection(self, conn: psycopg2.extensions.connection) -> None:
        """Return connection to pool."""
        if self._pool:
            self._pool.putconn(conn)

    def _table(self, name: str) -> str:
        return f"{self._schema}.{name}"

    # =========================================================================
    # Jobs
    # =========================================================================
    @with_db_retry(error_message="Failed to query pending jobs", error_cls=PollQueryError)
    def find_pending_jobs(self, conn, limit: int = 5) -> list[Job]:
        """Get send_email jobs eligible to be claimed.

        Highest priority first, oldest first within a priority.

        Args:
            limit: Max jobs to return (clamped to 1..100).

        Returns:
            Pending job records.

        Raises:
            PollQueryError: If the query fails.
        """
        limit = min(max(limit, 1), 100)

        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT * FROM {self._table("jobs")}
                WHERE job_type = %s
                  AND status = %s
                  AND retries < max_retries
                  AND (next_retry_at IS NULL OR next_retry_at <= now())
                ORDER BY priority DESC, created_at ASC
                LIMIT %s
                """,
                (JobType.SEND_EMAIL.value, JobStatus.PENDING.value, limit),
            )
            rows = cur.fetchall()
        conn.commit()

        jobs = [_row_to_job(row) for row in rows]
        logger.debug(f"Found {len(jobs)} pending send_email jobs")
        return jobs

    @with_db_retry(error_message="Failed to claim job")
    def claim_job(self, conn, job_id: str) -> Job | None:
        """Atomically move a pending job to processing and count the attempt.

        The update only matches while the row is still ``pending``, so of two
        workers racing for the same job exactly one gets it.

        Args:
            job_id: Job to claim.

        Returns:
            The claimed job as persisted, or None if it was no longer pending.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._table("jobs")}
                SET status = %s,
                    retries = retries + 1,
                    updated_at = now()
                WHERE id = %s
                  AND status = %s
                  AND retries < max_retries
                RETURNING *
                """,
                (JobStatus.PROCESSING.value, job_id, JobStatus.PENDING.value),
            )
            row = cur.fetchone()
        conn.commit()

        if not row:
            logger.debug(f"Job {job_id} was not claimable")
            return None
        return _row_to_job(row)

    @with_db_retry(error_message="Failed to complete job")
    def complete_job(self, conn, job_id: str, result: dict[str, Any]) -> bool:
        """Mark an in-flight job completed with its result payload.

        Returns:
            True if the job row was updated.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._table("jobs")}
                SET status = %s,
                    result = %s,
                    updated_at = now()
                WHERE id = %s AND status = %s
                """,
                (JobStatus.COMPLETED.value, Json(result), job_id, JobStatus.PROCESSING.value),
            )
            updated = cur.rowcount == 1
        conn.commit()
        return updated

    @with_db_retry(error_message="Failed to record job failure")
    def fail_job(
        self,
        conn,
        job_id: str,
        error: str,
        terminal: bool,
        retry_delay_seconds: int = 0,
    ) -> bool:
        """Record a failed attempt on an in-flight job.

        Args:
            job_id: Job that failed.
            error: Failure message kept on the job.
            terminal: True moves the job to ``failed``, False back to ``pending``.
            retry_delay_seconds: Delay before a re-pended job is eligible again.

        Returns:
            True if the job row was updated.
        """
        status = JobStatus.FAILED if terminal else JobStatus.PENDING

        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._table("jobs")}
                SET status = %(status)s,
                    error = %(error)s,
                    next_retry_at = CASE
                        WHEN %(terminal)s THEN NULL
                        ELSE now() + %(delay)s * interval '1 second'
                    END,
                    updated_at = now()
                WHERE id = %(job_id)s AND status = %(processing)s
                """,
                {
                    "status": status.value,
                    "error": error,
                    "terminal": terminal,
                    "delay": retry_delay_seconds,
                    "job_id": job_id,
                    "processing": JobStatus.PROCESSING.value,
                },
            )
            updated = cur.rowcount == 1
        conn.commit()
        return updated

    @with_db_retry(error_message="Failed to get job stats")
    def get_job_stats(self, conn) -> dict[str, int]:
        """Count send_email jobs by status.

        Returns:
            Dictionary mapping status names to counts.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT status, COUNT(*) AS count
                FROM {self._table("jobs")}
                WHERE job_type = %s
                GROUP BY status
                """,
                (JobType.SEND_EMAIL.value,),
            )
            rows = cur.fetchall()
        conn.commit()
        return {row["status"]: row["count"] for row in rows}

    # =========================================================================
    # Tickets
    # =========================================================================
    @with_db_retry(error_message="Failed to retrieve ticket")
    def get_ticket(self, conn, ticket_id: str) -> Ticket | None:
        """Get a ticket joined with its parent event name."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT t.id, t.ticket_number, t.event_id, e.name AS event_name,
                       t.status, t.image_url, t.ticket_details
                FROM {self._table("tickets")} t
                LEFT JOIN {self._table("events")} e ON e.id = t.event_id
                WHERE t.id = %s
                """,
                (ticket_id,),
            )
            row = cur.fetchone()
        conn.commit()

        if not row:
            return None
        row_dict = dict(row)
        details = row_dict.get("ticket_details")
        if isinstance(details, str):
            row_dict["ticket_details"] = json.loads(details)
        elif details is None:
            row_dict["ticket_details"] = {}
        return Ticket(**row_dict)

    @with_db_retry(error_message="Failed to update ticket status")
    def mark_ticket_sent(self, conn, ticket_id: str) -> bool:
        """Advance a ticket to ``sent``."""
        with conn.cursor() as cur:
            cur.execute(
                f"UPDATE {self._table('tickets')} SET status = %s WHERE id = %s",
                (TICKET_STATUS_SENT, ticket_id),
            )
            updated = cur.rowcount == 1
        conn.commit()
        return updated

    # =========================================================================
    # Credentials
    # =========================================================================
    @with_db_retry(error_message="Failed to select email credential")
    def find_available_credential(self, conn) -> EmailCredential | None:
        """First active credential with quota left, in store order."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT * FROM {self._table("email_credentials")}
                WHERE is_active
                  AND (daily_limit IS NULL OR daily_usage < daily_limit)
                ORDER BY created_at ASC, id ASC
                LIMIT 1
                """
            )
            row = cur.fetchone()
        conn.commit()
        return EmailCredential(**dict(row)) if row else None

    @with_db_retry(error_message="Failed to increment credential usage")
    def increment_credential_usage(self, conn, credential_id: str) -> bool:
        """Count one confirmed send against the credential's daily quota."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._table("email_credentials")}
                SET daily_usage = daily_usage + 1
                WHERE id = %s
                """,
                (credential_id,),
            )
            updated = cur.rowcount == 1
        conn.commit()
        return updated

    @with_db_retry(error_message="Failed to list email credentials")
    def list_credentials(self, conn) -> list[EmailCredential]:
        """All stored credentials, active or not."""
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT * FROM {self._table('email_credentials')} ORDER BY created_at ASC, id ASC"
            )
            rows = cur.fetchall()
        conn.commit()
        return [EmailCredential(**dict(row)) for row in rows]

    # =========================================================================
    # Lifecycle
    # =========================================================================
    def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is accessible, False otherwise.
        """
        try:
            conn = self._get_connection()
            try:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
                conn.rollback()
                return True
            finally:
                self._return_connection(conn)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return False

    def close(self) -> None:
        """Close all connections in pool."""
        if self._pool:
            logger.info("Closing database connection pool...")
            self._cleanup_pool()
            logger.info("Connection pool closed")
