"""Job progress tracking for program generation."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from studio.ai.errors import GenerationError
from studio.generation import progress as messages
from studio.generation.contracts import Chunk
from studio.jobs.models import JobRecord, JobStatus
from studio.storage.jobs_repo import JobsRepository

MAX_TRACKED_LOGS = 100


class JobProgressTracker:
  """Publish step counters, percentages and log lines for a polling client.

  Every publish goes through ``JobsRepository.update_progress``, which is a
  no-op once the job is terminal, so a generation loop that lost the deadline
  race cannot overwrite the final state. Terminal fields are only built here;
  the deadline controller writes them.
  """

  def __init__(self, *, job_id: str, jobs_repo: JobsRepository, chunk_count: int, initial_logs: Iterable[str] | None = None) -> None:
    self._job_id = job_id
    self._jobs_repo = jobs_repo
    self._chunk_count = max(chunk_count, 1)
    self._total_steps = messages.total_steps(self._chunk_count)
    self._current_step = 0
    self._logs: list[str] = list(initial_logs or [])[-MAX_TRACKED_LOGS:]

  @property
  def total_steps(self) -> int:
    return self._total_steps

  @property
  def logs(self) -> list[str]:
    """Return a copy of the tracked logs."""
    return list(self._logs)

  def add_logs(self, *lines: str) -> None:
    """Append log lines while preserving the rolling window."""
    self._logs.extend(lines)
    if len(self._logs) > MAX_TRACKED_LOGS:
      self._logs = self._logs[-MAX_TRACKED_LOGS:]

  async def _publish(self, *, step: int, percent: int, message: str, status: JobStatus | None = None, **extra: Any) -> JobRecord | None:
    self._current_step = max(self._current_step, min(step, self._total_steps))
    self.add_logs(message)
    return await self._jobs_repo.update_progress(self._job_id, status=status, progress_percent=percent, current_step=self._current_step, total_steps=self._total_steps, progress_message=message, logs=self._logs, **extra)

  async def started(self, *, deadline_at: str, program_id: str | None) -> JobRecord | None:
    """Record the absolute deadline and the filter phase."""
    message = messages.progress_message(messages.PHASE_FILTERING)
    return await self._publish(step=1, percent=messages.FILTERING_PERCENT, message=message, deadline_at=deadline_at, program_id=program_id)

  async def filtering_completed(self, pool_size: int) -> JobRecord | None:
    message = messages.progress_message(messages.PHASE_FILTERED, count=pool_size)
    return await self._publish(step=2, percent=messages.FILTERED_PERCENT, message=message)

  async def chunk_started(self, chunk: Chunk) -> JobRecord | None:
    message = messages.progress_message(messages.PHASE_CHUNK_STARTED, chunk=chunk, chunk_count=self._chunk_count)
    percent = messages.chunk_percent(chunk.index, self._chunk_count)
    return await self._publish(step=2 + chunk.index * 2 + 1, percent=percent, message=message)

  async def chunk_completed(self, chunk: Chunk, *, cost: dict[str, Any] | None = None) -> JobRecord | None:
    message = messages.progress_message(messages.PHASE_CHUNK_COMPLETED, chunk=chunk, chunk_count=self._chunk_count)
    percent = messages.chunk_percent(chunk.index + 1, self._chunk_count)
    return await self._publish(step=2 + chunk.index * 2 + 2, percent=percent, message=message, cost=cost)

  async def validation_started(self) -> JobRecord | None:
    """Move the job from running to validating."""
    message = messages.progress_message(messages.PHASE_VALIDATING)
    return await self._publish(step=self._total_steps - 2, percent=messages.VALIDATING_PERCENT, message=message, status="validating")

  async def saving(self, workout_count: int) -> JobRecord | None:
    message = messages.progress_message(messages.PHASE_SAVING, count=workout_count)
    return await self._publish(step=self._total_steps - 1, percent=messages.SAVING_PERCENT, message=message)

  def completed_fields(self) -> dict[str, Any]:
    """Fields written alongside the ``completed`` transition."""
    message = messages.progress_message(messages.PHASE_COMPLETED)
    self.add_logs(message)
    return {"progress_percent": 100, "current_step": self._total_steps, "progress_message": message, "logs": self.logs}

  def failed_fields(self, error: GenerationError, *, cost: dict[str, Any] | None = None) -> dict[str, Any]:
    """Fields written alongside the ``failed`` transition; progress stays where it stopped."""
    self.add_logs(f"{messages.progress_message(messages.PHASE_FAILED)}: {error.user_message()}")
    fields: dict[str, Any] = {"progress_message": messages.progress_message(messages.PHASE_FAILED), "logs": self.logs}
    # Tokens spent by the failing calls are still billed.
    if cost is not None:
      fields["cost"] = cost
    return fields
