"""Program generation orchestration: filter, plan, generate, assemble, persist."""

from __future__ import annotations

import logging
import math
import time
from typing import Any

from studio.ai.backoff import retry_with_backoff
from studio.ai.errors import GenerationError, TruncatedOutputError
from studio.ai.prompts import SYSTEM_PROMPT, build_chunk_prompt, build_user_prompt
from studio.ai.providers.base import CompletionModel
from studio.ai.utils.cost import DEFAULT_PRICING, PricingTable, UsageLedger
from studio.config import GenerationLimits
from studio.generation.assembler import ResultAssembler, merge_weeks
from studio.generation.candidate_filter import CandidateFilter, ensure_sufficient
from studio.generation.chunk_planner import build_carried_context, plan_chunks
from studio.generation.contracts import Chunk, GenerationAudit, PartialResult
from studio.generation.deadline import DeadlineRaceController, GenerationOutcome, compute_deadline
from studio.generation.executor import GenerationStepExecutor
from studio.jobs.models import JobRecord
from studio.jobs.progress import JobProgressTracker
from studio.services.profiles import resolve_program_request
from studio.storage.factory import Repositories
from studio.utils.ids import generate_program_id

logger = logging.getLogger(__name__)

TRUNCATION_BUDGET_FACTOR = 1.5


class ProgramGenerationOrchestrator:
  """Run one generation job end to end inside a deadline race.

  Chunks execute strictly in order: each prompt carries context from the
  weeks already merged from earlier chunks.
  """

  def __init__(self, *, repositories: Repositories, model: CompletionModel, limits: GenerationLimits, prompt_version: str = "v1.0.0", pricing_table: PricingTable | None = None, candidate_filter: CandidateFilter | None = None) -> None:
    self._repos = repositories
    self._model = model
    self._limits = limits
    self._prompt_version = prompt_version
    self._pricing_table = pricing_table or DEFAULT_PRICING
    self._filter = candidate_filter or CandidateFilter()
    self._controller = DeadlineRaceController(jobs_repo=repositories.jobs, grace_seconds=limits.deadline_grace_seconds)

  async def run(self, job: JobRecord) -> JobRecord | None:
    """Generate the program for a running job; returns the terminal record this call wrote."""
    total_weeks = int(job.request["total_weeks"])
    sessions_per_week = int(job.request["sessions_per_week"])
    deadline = compute_deadline(total_weeks, self._limits)
    chunks = plan_chunks(total_weeks, sessions_per_week, self._limits)
    tracker = JobProgressTracker(job_id=job.job_id, jobs_repo=self._repos.jobs, chunk_count=len(chunks), initial_logs=job.logs)
    # Reuse the program id from an earlier attempt so program writes stay idempotent.
    program_id = job.program_id or generate_program_id()
    ledger = UsageLedger(pricing_table=self._pricing_table)
    logger.info("Job %s: %d weeks x %d sessions, deadline %.0fs, %d chunk(s)", job.job_id, total_weeks, sessions_per_week, deadline.seconds, len(chunks))

    async def _work() -> GenerationOutcome:
      await tracker.started(deadline_at=deadline.deadline_at, program_id=program_id)
      return await self._generate(job, chunks, tracker, program_id, ledger)

    def _failure_fields(error: GenerationError) -> dict[str, Any]:
      # Usage recorded before the failure still lands on the job.
      return tracker.failed_fields(error, cost=ledger.as_dict())

    return await self._controller.run(job.job_id, deadline, _work, failure_fields=_failure_fields)

  async def _generate(self, job: JobRecord, chunks: list[Chunk], tracker: JobProgressTracker, program_id: str, ledger: UsageLedger) -> GenerationOutcome:
    started = time.monotonic()
    # Profile constraints are resolved here so a missing profile fails the job, not the request.
    request = await resolve_program_request(job.request, self._repos.profiles)

    # Filter first: an undersized pool fails before any model call is paid for.
    catalog = await self._repos.catalog.list_exercises()
    pool = self._filter.filter(catalog, request.constraints)
    ensure_sufficient(pool, groups_per_unit=request.sessions_per_week, minimum_per_group=self._limits.minimum_per_group)
    await tracker.filtering_completed(len(pool))

    executor = GenerationStepExecutor(self._model, ledger=ledger, temperature=self._limits.temperature)
    base_prompt = build_user_prompt(request, pool.exercises)

    partials: list[PartialResult] = []
    for chunk in chunks:
      await tracker.chunk_started(chunk)
      # Later chunks see a summary of the weeks already generated.
      merged, _ = merge_weeks(partials)
      context = build_carried_context(merged) if chunk.index > 0 else []
      prompt = build_chunk_prompt(base_prompt, chunk, total_units=request.total_weeks, groups_per_unit=request.sessions_per_week, carried_context=context)
      partial = await self._execute_chunk(executor, chunk, prompt)
      partials.append(partial)
      await tracker.chunk_completed(chunk, cost=ledger.as_dict())

    logger.info("Job %s: all %d chunk(s) generated, %d total tokens", job.job_id, len(chunks), ledger.total_tokens)
    await tracker.validation_started()
    # Merge, dedupe and validate; raises ProgramValidationError before anything is written.
    assembler = ResultAssembler(self._repos.programs)
    artifact = assembler.assemble(partials, pool, request, program_id=program_id)
    artifact.latency_ms = int((time.monotonic() - started) * 1000)
    artifact.usage = ledger.as_dict()

    await tracker.saving(artifact.workout_count)
    audit = GenerationAudit(
      program_id=program_id,
      status="completed",
      provider=artifact.provider or self._model.provider,
      model=artifact.model or self._model.name,
      prompt_version=self._prompt_version,
      input_tokens=ledger.input_tokens,
      output_tokens=ledger.output_tokens,
      estimated_cost_usd=ledger.total_cost(),
      latency_ms=artifact.latency_ms,
      retry_count=max(ledger.call_count - len(chunks), 0),
      call_count=ledger.call_count,
    )
    await assembler.persist(artifact, audit)

    # Summary returned to polling clients on completion.
    result: dict[str, Any] = {
      "program_id": program_id,
      "program_name": artifact.program_name,
      "weeks": len(artifact.weeks),
      "workouts": artifact.workout_count,
      "duplicates_discarded": artifact.duplicates_discarded,
      "filter_stats": pool.stats.as_dict(),
      "movement_balance_summary": artifact.movement_balance_summary,
      "category_balance_summary": artifact.category_balance_summary,
      "latency_ms": artifact.latency_ms,
    }
    return GenerationOutcome(program_id=program_id, result_json=result, cost=ledger.as_dict(), completed_fields=tracker.completed_fields())

  async def _execute_chunk(self, executor: GenerationStepExecutor, chunk: Chunk, prompt: str) -> PartialResult:
    """Apply the caller-level retry policy around a single chunk."""
    budget = chunk.token_budget
    retries = 0
    while True:
      try:
        # Backoff covers retryable provider errors; truncation is handled below.
        return await retry_with_backoff(lambda: executor.execute(chunk, system=SYSTEM_PROMPT, prompt=prompt, max_tokens=budget), self._limits.provider_retry_delays)
      except TruncatedOutputError:
        # Stop after the configured retries or once the budget sits at the ceiling.
        if retries >= self._limits.truncation_retries or budget >= self._limits.token_ceiling:
          raise
        retries += 1
        budget = min(self._limits.token_ceiling, math.ceil(budget * TRUNCATION_BUDGET_FACTOR))
        logger.warning("Chunk %d truncated; retrying with %d tokens (attempt %d/%d)", chunk.index + 1, budget, retries, self._limits.truncation_retries)
