"""API response schemas.

Pydantic models for the worker's reporting surface.

Version: 2.0.0
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from ticket_mailer.models.stats import JobStats, PollSummary


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkerConfigEcho(BaseModel):
    """Subset of the configuration exposed on GET /."""

    port: int = Field(description="HTTP listen port")
    poll_interval: int = Field(description="Milliseconds between poll cycles")
    batch_size: int = Field(description="Max jobs per cycle")


class ServiceInfoResponse(BaseModel):
    """Response model for GET / endpoint."""

    service: str = Field(description="Service name")
    version: str = Field(description="Service version")
    description: str = Field(description="What the service does")
    status: str = Field(description="running")
    uptime: float = Field(description="Seconds since startup")
    environment: str = Field(description="Runtime environment tag")
    database: str = Field(description="connected or disconnected")
    config: WorkerConfigEcho
    endpoints: dict[str, str] = Field(description="Available endpoints")
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthResponse(BaseModel):
    """Response model for GET /health endpoint."""

    status: str = Field(description="healthy or unhealthy")
    service: str = Field(description="Service identifier")
    database: str = Field(description="connected or disconnected")
    uptime: float = Field(description="Seconds since startup")
    timestamp: datetime = Field(default_factory=_utcnow)


class StatsResponse(JobStats):
    """Response model for GET /stats endpoint."""

    timestamp: datetime = Field(default_factory=_utcnow)


class TriggerResponse(BaseModel):
    """Response model for POST /trigger endpoint."""

    success: bool = Field(description="Whether the poll cycle ran")
    message: str = Field(description="Cycle summary")
    summary: PollSummary | None = Field(default=None, description="Cycle counters")
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str = Field(description="Error description")
