"""Storage interfaces for background jobs."""

from __future__ import annotations

from typing import Any, Protocol

from studio.jobs.models import JobRecord, JobStatus


class JobsRepository(Protocol):
  """Repository contract for job persistence.

  Progress writes are ignored once a job is terminal, and
  ``transition_terminal`` is the only way to reach ``completed`` or
  ``failed``. Implementations must make that transition atomic.
  """

  async def create_job(self, record: JobRecord) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def claim_job(self, job_id: str) -> JobRecord | None:
    """Atomically move a queued job to running; None when it was not queued."""

  async def update_progress(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    progress_percent: int | None = None,
    current_step: int | None = None,
    total_steps: int | None = None,
    progress_message: str | None = None,
    program_id: str | None = None,
    deadline_at: str | None = None,
    logs: list[str] | None = None,
    cost: dict[str, Any] | None = None,
  ) -> JobRecord | None:
    """Apply non-terminal updates; a terminal job is returned unchanged."""

  async def transition_terminal(
    self,
    job_id: str,
    status: JobStatus,
    *,
    error_message: str | None = None,
    error_code: str | None = None,
    progress_percent: int | None = None,
    current_step: int | None = None,
    progress_message: str | None = None,
    program_id: str | None = None,
    result_json: dict[str, Any] | None = None,
    cost: dict[str, Any] | None = None,
    logs: list[str] | None = None,
  ) -> JobRecord | None:
    """Compare-and-swap into a terminal status; None when the job was already terminal or missing."""

  async def find_queued(self, limit: int = 5) -> list[JobRecord]:
    """Return a small batch of queued jobs."""

  async def find_by_idempotency_key(self, idempotency_key: str) -> JobRecord | None:
    """Return a job created with a given idempotency key, if present."""
