"""Job statistics models.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from pydantic import BaseModel, Field


class JobStats(BaseModel):
    """Counts of send_email jobs by status."""

    pending: int = Field(default=0, ge=0, description="Waiting to be claimed")
    processing: int = Field(default=0, ge=0, description="Claimed, in flight")
    completed: int = Field(default=0, ge=0, description="Delivered")
    failed: int = Field(default=0, ge=0, description="Permanently failed")

    @classmethod
    def from_counts(cls, counts: dict[str, int]) -> "JobStats":
        """Build from a ``{status: count}`` mapping, ignoring other statuses."""
        return cls(**{name: counts.get(name, 0) for name in cls.model_fields})


class PollSummary(BaseModel):
    """Outcome of one poll cycle.

    Attributes:
        found: Candidate jobs returned by the query.
        succeeded: Jobs delivered.
        failed: Jobs whose attempt failed (re-pended or terminal).
        skipped: Jobs claimed by another worker first.
        error: Query error message when the cycle aborted.
    """

    found: int = Field(default=0, ge=0)
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    error: str | None = Field(default=None)
