"""Ticket mailer HTTP surface.

FastAPI application hosting the email worker and its reporting endpoints:
- GET /: Service metadata
- GET /health: Liveness with database status
- GET /stats: send_email job counts by status
- POST /trigger: Run one poll cycle now

The poll loop runs as a background task on the same event loop.

Security features:
- Optional API key on /stats and /trigger
- Sanitized error responses

Version: 3.0.0
"""

from __future__ import annotations

import asyncio
import secrets
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from ticket_mailer.api.schemas import (
    ErrorResponse,
    HealthResponse,
    ServiceInfoResponse,
    StatsResponse,
    TriggerResponse,
    WorkerConfigEcho,
)
from ticket_mailer.config import WorkerConfig
from ticket_mailer.core.logger import get_logger, setup_logging
from ticket_mailer.database.store import JobStore
from ticket_mailer.models.stats import JobStats
from ticket_mailer.worker.poller import EmailWorker

logger = get_logger(__name__)

HEALTH_SERVICE_ID = "email-worker"


# =============================================================================
# Application State (Dependency Injection)
# =============================================================================
@dataclass
class AppState:
    """Application state container for dependency injection."""

    config: WorkerConfig
    store: JobStore | None = None
    worker: EmailWorker | None = None
    worker_task: asyncio.Task | None = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return round(time.monotonic() - self.started_at, 3)


app_state: AppState | None = None


def get_state() -> AppState:
    """Dependency: Get application state."""
    if not app_state:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return app_state


def get_config(state: Annotated[AppState, Depends(get_state)]) -> WorkerConfig:
    """Dependency: Get application configuration."""
    return state.config


def get_store(state: Annotated[AppState, Depends(get_state)]) -> JobStore:
    """Dependency: Get job store instance."""
    if not state.store:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return state.store


def get_worker(state: Annotated[AppState, Depends(get_state)]) -> EmailWorker:
    """Dependency: Get email worker instance."""
    if not state.worker:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Worker not running",
        )
    return state.worker


# =============================================================================
# API Key Authentication
# =============================================================================
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Depends(API_KEY_HEADER)],
    config: Annotated[WorkerConfig, Depends(get_config)],
) -> bool:
    """Verify API key if authentication is enabled.

    Returns True if:
    - API_KEY is not configured (auth disabled)
    - API_KEY matches the provided key
    """
    configured_key = config.API_KEY

    if not configured_key:
        return True

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, configured_key):
        logger.warning("Invalid API key attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


# =============================================================================
# Lifespan Context Manager
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the store and the poll loop; stop both on shutdown."""
    global app_state

    config = WorkerConfig()
    app_state = AppState(config=config)

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
        app_state.store = JobStore(config)
        logger.info(f"Database connected: schema {config.SCHEMA_NAME}")
    except Exception as e:
        logger.error(f"Failed to start worker: {e}")
        raise

    app_state.worker = EmailWorker(config, app_state.store)
    app_state.worker_task = asyncio.create_task(app_state.worker.run())

    yield

    logger.info(f"Shutting down {config.SERVICE_NAME}...")
    app_state.worker.stop()
    try:
        await app_state.worker_task
    except Exception:
        logger.error("Worker loop ended with an error", exc_info=True)
    app_state.store.close()
    logger.info(f"{config.SERVICE_NAME} stopped")


# =============================================================================
# FastAPI Application
# =============================================================================
def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    return FastAPI(
        title="Email Worker Service",
        description="Background worker delivering queued ticket emails over SMTP",
        lifespan=lifespan,
    )


app = create_app()


# =============================================================================
# API Endpoints
# =============================================================================
@app.get("/", response_model=ServiceInfoResponse)
async def service_info(
    state: Annotated[AppState, Depends(get_state)],
) -> ServiceInfoResponse:
    """Describe the service. No authentication required."""
    config = state.config
    connected = bool(state.store) and await asyncio.to_thread(state.store.health_check)

    return ServiceInfoResponse(
        service=config.SERVICE_NAME,
        version=config.SERVICE_VERSION,
        description="Polls the job queue and delivers ticket emails over SMTP",
        status="running",
        uptime=state.uptime,
        environment=config.ENVIRONMENT,
        database="connected" if connected else "disconnected",
        config=WorkerConfigEcho(
            port=config.PORT,
            poll_interval=config.POLL_INTERVAL,
            batch_size=config.WORKER_BATCH_SIZE,
        ),
        endpoints={
            "health": "GET /health",
            "stats": "GET /stats",
            "trigger": "POST /trigger",
        },
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse, "description": "Service unhealthy"}},
)
async def health_check(
    state: Annotated[AppState, Depends(get_state)],
) -> HealthResponse | JSONResponse:
    """Check service health.

    No authentication required - used by load balancers and monitoring.
    The store status is reported under ``database`` (PostgreSQL), not
    under a document-store specific key.
    """
    connected = False
    if state.store:
        try:
            connected = await asyncio.to_thread(state.store.health_check)
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")

    response = HealthResponse(
        status="healthy" if connected else "unhealthy",
        service=HEALTH_SERVICE_ID,
        database="connected" if connected else "disconnected",
        uptime=state.uptime,
    )

    if not connected:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )

    return response


@app.get(
    "/stats",
    response_model=StatsResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
)
async def get_stats(
    store: Annotated[JobStore, Depends(get_store)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> StatsResponse:
    """Get send_email job counts by status.

    Requires API key authentication if API_KEY is configured.
    """
    try:
        counts = await asyncio.to_thread(store.get_job_stats)
        return StatsResponse(**JobStats.from_counts(counts).model_dump())
    except Exception as e:
        logger.error(f"Failed to get job stats: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve job stats",
        ) from None


@app.post(
    "/trigger",
    response_model=TriggerResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Processing failed"},
    },
)
async def trigger_poll(
    worker: Annotated[EmailWorker, Depends(get_worker)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> TriggerResponse:
    """Run one poll cycle and wait for it to finish.

    If a timed cycle is in progress, this waits for it and then runs its own.
    Requires API key authentication if API_KEY is configured.
    """
    try:
        summary = await worker.poll_jobs()
    except Exception as e:
        logger.error(f"Manual poll failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to run poll cycle",
        ) from None

    if summary.error:
        message = f"Poll cycle aborted: {summary.error}"
    else:
        message = (
            f"Job polling triggered: {summary.found} found, {summary.succeeded} sent, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )

    return TriggerResponse(success=summary.error is None, message=message, summary=summary)


# =============================================================================
# Entry Point
# =============================================================================
def run():
    """Run the API server with the embedded worker."""
    import uvicorn

    config = WorkerConfig()
    logger.info(f"Starting {config.SERVICE_NAME} on {config.API_HOST}:{config.PORT}")
    uvicorn.run(
        "ticket_mailer.api.main:app",
        host=config.API_HOST,
        port=config.PORT,
        reload=False,
    )


if __name__ == "__main__":
    run()
