"""Deadline computation and the race that guarantees a terminal job status."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from studio.ai.errors import DeadlineExceededError, GenerationError, InternalGenerationError
from studio.config import GenerationLimits
from studio.jobs.models import JobRecord
from studio.storage.jobs_repo import JobsRepository
from studio.utils.timefmt import iso_from_epoch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobDeadline:
  """Absolute deadline computed once when the job starts."""

  units: int
  seconds: float
  uncapped_seconds: float
  platform_max_seconds: float
  started_monotonic: float = field(default_factory=time.monotonic)
  started_epoch: float = field(default_factory=time.time)

  @property
  def structural(self) -> bool:
    """True when the request could never finish inside the platform limit."""
    return self.uncapped_seconds > self.platform_max_seconds

  @property
  def deadline_at(self) -> str:
    return iso_from_epoch(self.started_epoch + self.seconds)

  def remaining(self) -> float:
    return max(0.0, self.started_monotonic + self.seconds - time.monotonic())

  def exceeded_error(self) -> DeadlineExceededError:
    if self.structural:
      message = (
        f"Generation timed out: a {self.units}-week program needs about {self.uncapped_seconds:.0f}s but the platform limit is "
        f"{self.platform_max_seconds:.0f}s. Request fewer weeks."
      )
    else:
      message = f"Generation timed out after {self.seconds:.0f}s. The AI service was slower than usual; please try again."
    return DeadlineExceededError(message, structural=self.structural)


def compute_deadline(units: int, limits: GenerationLimits) -> JobDeadline:
  """Return ``min(base + units * per_unit, platform_max)`` seconds from now."""
  uncapped = limits.deadline_base_seconds + units * limits.deadline_per_unit_seconds
  seconds = min(uncapped, limits.platform_max_duration_seconds)
  return JobDeadline(units=units, seconds=seconds, uncapped_seconds=uncapped, platform_max_seconds=limits.platform_max_duration_seconds)


@dataclass(frozen=True)
class GenerationOutcome:
  """Result handed from the generation loop to the terminal writer."""

  program_id: str
  result_json: dict[str, Any]
  cost: dict[str, Any]
  completed_fields: dict[str, Any] = field(default_factory=dict)


FailureFields = Callable[[GenerationError], dict[str, Any]]


class DeadlineRaceController:
  """Race the generation loop against a deadline and own every terminal write.

  The loop runs as its own task. When the deadline elapses first, the task is
  cancelled (which aborts the in-flight provider request) and ``failed`` is
  written. When the loop finishes first, its result or error is written. Both
  paths go through ``JobsRepository.transition_terminal``, a compare-and-swap,
  so a job that is already terminal is never written twice.
  """

  def __init__(self, *, jobs_repo: JobsRepository, grace_seconds: float = 5.0) -> None:
    self._jobs_repo = jobs_repo
    self._grace_seconds = grace_seconds

  async def run(self, job_id: str, deadline: JobDeadline, work: Callable[[], Awaitable[GenerationOutcome]], *, failure_fields: FailureFields | None = None) -> JobRecord | None:
    """Return the terminal record written by this call, or None when the race was already lost."""
    task = asyncio.create_task(work(), name=f"generation:{job_id}")
    try:
      done, _ = await asyncio.wait({task}, timeout=deadline.remaining())
    except asyncio.CancelledError:
      # The caller is going away (shutdown); the job must still end terminal.
      task.cancel()
      logger.warning("Job %s controller cancelled before the generation finished", job_id)
      error = InternalGenerationError("Generation was interrupted before it finished. Please try again.")
      await asyncio.shield(self._commit_failure(job_id, error, failure_fields))
      raise

    if task in done:
      return await self._commit_result(job_id, task, failure_fields)

    task.cancel()
    error = deadline.exceeded_error()
    logger.error("Job %s exceeded its %.0fs deadline (structural=%s)", job_id, deadline.seconds, deadline.structural)
    record = await self._commit_failure(job_id, error, failure_fields)
    await self._drain(job_id, task)
    return record

  async def _commit_result(self, job_id: str, task: asyncio.Task[GenerationOutcome], failure_fields: FailureFields | None) -> JobRecord | None:
    if task.cancelled():
      return await self._commit_failure(job_id, InternalGenerationError("Generation was cancelled"), failure_fields)

    exc = task.exception()
    if isinstance(exc, GenerationError):
      logger.warning("Job %s failed with %s: %s", job_id, exc.code, exc)
      return await self._commit_failure(job_id, exc, failure_fields)
    if exc is not None:
      logger.error("Job %s crashed during generation", job_id, exc_info=exc)
      error = InternalGenerationError(f"Internal error during generation: {exc}")
      return await self._commit_failure(job_id, error, failure_fields)

    outcome = task.result()
    fields = dict(outcome.completed_fields)
    record = await self._jobs_repo.transition_terminal(job_id, "completed", program_id=outcome.program_id, result_json=outcome.result_json, cost=outcome.cost, **fields)
    if record is None:
      logger.warning("Job %s was already terminal; discarding completed result", job_id)
    else:
      logger.info("Job %s completed (program %s)", job_id, outcome.program_id)
    return record

  async def _commit_failure(self, job_id: str, error: GenerationError, failure_fields: FailureFields | None) -> JobRecord | None:
    fields = failure_fields(error) if failure_fields else {}
    record = await self._jobs_repo.transition_terminal(job_id, "failed", error_message=error.user_message(), error_code=error.code, **fields)
    if record is None:
      logger.warning("Job %s was already terminal; dropping failure %s", job_id, error.code)
    return record

  async def _drain(self, job_id: str, task: asyncio.Task[GenerationOutcome]) -> None:
    done, _ = await asyncio.wait({task}, timeout=self._grace_seconds)
    if not done:
      logger.warning("Job %s generation task did not stop within %.1fs of cancellation", job_id, self._grace_seconds)
      return
    if not task.cancelled() and task.exception() is not None:
      logger.debug("Job %s generation task ended with %r after the deadline", job_id, task.exception())
