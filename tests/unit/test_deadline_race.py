"""Unit tests for the deadline race and its single terminal writer."""

from __future__ import annotations

import asyncio
import time

import pytest

from studio.ai.errors import MalformedOutputError
from studio.config import GenerationLimits
from studio.generation.deadline import DeadlineRaceController, GenerationOutcome, JobDeadline, compute_deadline
from studio.jobs.models import JobRecord
from studio.storage.memory import InMemoryJobsRepository
from tests.support import manual_request


def _short_deadline(seconds: float, *, uncapped: float | None = None, platform_max: float = 300.0) -> JobDeadline:
  return JobDeadline(units=2, seconds=seconds, uncapped_seconds=uncapped if uncapped is not None else seconds, platform_max_seconds=platform_max)


async def _running_job(repo: InMemoryJobsRepository, job_id: str = "job-1") -> None:
  await repo.create_job(JobRecord(job_id=job_id, request=manual_request(2, 3), status="queued", created_at="2026-01-01T00:00:00Z", updated_at="2026-01-01T00:00:00Z"))
  await repo.claim_job(job_id)


def test_deadline_scales_with_weeks_and_caps_at_platform_limit() -> None:
  limits = GenerationLimits()
  short = compute_deadline(2, limits)
  assert short.seconds == 20 + 2 * 35
  assert short.structural is False
  capped = compute_deadline(12, limits)
  assert capped.seconds == 300
  assert capped.uncapped_seconds == 20 + 12 * 35
  assert capped.structural is True


def test_deadline_messages_distinguish_structural_from_transient() -> None:
  limits = GenerationLimits()
  structural = compute_deadline(12, limits).exceeded_error()
  transient = compute_deadline(2, limits).exceeded_error()
  assert structural.structural is True
  assert "Request fewer weeks" in structural.user_message()
  assert transient.structural is False
  assert "try again" in transient.user_message()
  assert structural.code == transient.code == "deadline_exceeded"


@pytest.mark.anyio
async def test_never_resolving_work_fails_within_deadline_and_stays_failed() -> None:
  repo = InMemoryJobsRepository()
  await _running_job(repo)
  cancelled = asyncio.Event()

  async def _work() -> GenerationOutcome:
    try:
      await asyncio.Event().wait()
    except asyncio.CancelledError:
      cancelled.set()
      raise
    raise AssertionError("unreachable")

  controller = DeadlineRaceController(jobs_repo=repo, grace_seconds=1.0)
  started = time.monotonic()
  record = await controller.run("job-1", _short_deadline(0.2), _work)
  elapsed = time.monotonic() - started

  assert record is not None
  assert record.status == "failed"
  assert record.error_code == "deadline_exceeded"
  assert elapsed < 0.2 + 1.0
  # The in-flight work was cancelled, not merely abandoned.
  assert cancelled.is_set()

  late = await repo.transition_terminal("job-1", "completed", program_id="late")
  assert late is None
  stored = await repo.get_job("job-1")
  assert stored.status == "failed"
  assert stored.program_id is None


@pytest.mark.anyio
async def test_work_that_swallows_cancellation_cannot_complete_the_job() -> None:
  repo = InMemoryJobsRepository()
  await _running_job(repo)

  async def _stubborn() -> GenerationOutcome:
    try:
      await asyncio.sleep(10)
    except asyncio.CancelledError:
      # Keep running after cancellation and try to report success.
      pass
    await repo.update_progress("job-1", progress_percent=99, progress_message="still going")
    return GenerationOutcome(program_id="prog-late", result_json={}, cost={})

  controller = DeadlineRaceController(jobs_repo=repo, grace_seconds=0.5)
  record = await controller.run("job-1", _short_deadline(0.1), _stubborn)

  assert record.status == "failed"
  stored = await repo.get_job("job-1")
  assert stored.status == "failed"
  assert stored.progress_percent != 99
  assert stored.program_id is None


@pytest.mark.anyio
async def test_completed_work_commits_result_and_completion_fields() -> None:
  repo = InMemoryJobsRepository()
  await _running_job(repo)

  async def _work() -> GenerationOutcome:
    return GenerationOutcome(program_id="prog-1", result_json={"weeks": 2}, cost={"calls": 1}, completed_fields={"progress_percent": 100, "progress_message": "Program generation complete!"})

  record = await DeadlineRaceController(jobs_repo=repo).run("job-1", _short_deadline(5.0), _work)
  assert record.status == "completed"
  assert record.program_id == "prog-1"
  assert record.progress_percent == 100
  assert record.result_json == {"weeks": 2}
  assert record.completed_at is not None


@pytest.mark.anyio
async def test_generation_errors_are_written_verbatim() -> None:
  repo = InMemoryJobsRepository()
  await _running_job(repo)

  async def _work() -> GenerationOutcome:
    raise MalformedOutputError("Chunk 2 returned malformed JSON")

  record = await DeadlineRaceController(jobs_repo=repo).run("job-1", _short_deadline(5.0), _work, failure_fields=lambda error: {"progress_message": "Program generation failed"})
  assert record.status == "failed"
  assert record.error_message == "Chunk 2 returned malformed JSON"
  assert record.error_code == "malformed_output"
  assert record.progress_message == "Program generation failed"


@pytest.mark.anyio
async def test_unexpected_errors_become_internal_failures() -> None:
  repo = InMemoryJobsRepository()
  await _running_job(repo)

  async def _work() -> GenerationOutcome:
    raise KeyError("weekly_structure")

  record = await DeadlineRaceController(jobs_repo=repo).run("job-1", _short_deadline(5.0), _work)
  assert record.status == "failed"
  assert record.error_code == "internal_error"


@pytest.mark.anyio
async def test_losing_writer_returns_none_when_job_already_terminal() -> None:
  repo = InMemoryJobsRepository()
  await _running_job(repo)
  await repo.transition_terminal("job-1", "failed", error_message="cancelled by operator", error_code="cancelled")

  async def _work() -> GenerationOutcome:
    return GenerationOutcome(program_id="prog-1", result_json={}, cost={})

  record = await DeadlineRaceController(jobs_repo=repo).run("job-1", _short_deadline(5.0), _work)
  assert record is None
  stored = await repo.get_job("job-1")
  assert stored.error_code == "cancelled"


@pytest.mark.anyio
async def test_cancelling_the_controller_still_fails_the_job() -> None:
  repo = InMemoryJobsRepository()
  await _running_job(repo)
  started = asyncio.Event()
  work_cancelled = asyncio.Event()

  async def _work() -> GenerationOutcome:
    started.set()
    try:
      await asyncio.Event().wait()
    except asyncio.CancelledError:
      work_cancelled.set()
      raise
    raise AssertionError("unreachable")

  controller = DeadlineRaceController(jobs_repo=repo)
  runner = asyncio.create_task(controller.run("job-1", _short_deadline(30.0), _work))
  await started.wait()
  runner.cancel()
  with pytest.raises(asyncio.CancelledError):
    await runner

  stored = await repo.get_job("job-1")
  assert stored.status == "failed"
  assert stored.error_code == "internal_error"
  assert "interrupted" in stored.error_message
  await asyncio.wait_for(work_cancelled.wait(), timeout=1.0)
