"""Background processor for queued program generation jobs."""

from __future__ import annotations

import logging
from collections.abc import Callable

from studio.ai.router import get_model_for_mode
from studio.ai.utils.cost import build_pricing_table
from studio.config import Settings, get_generation_limits
from studio.generation.orchestrator import ProgramGenerationOrchestrator
from studio.jobs.models import JobRecord
from studio.storage.factory import Repositories

OrchestratorFactory = Callable[[], ProgramGenerationOrchestrator]


class JobProcessor:
  """Claims queued jobs and hands them to the orchestrator."""

  def __init__(self, *, repositories: Repositories, settings: Settings, orchestrator_factory: OrchestratorFactory | None = None) -> None:
    self._repos = repositories
    self._settings = settings
    self._logger = logging.getLogger(__name__)
    self._orchestrator_factory = orchestrator_factory or self._build_orchestrator

  def _build_orchestrator(self) -> ProgramGenerationOrchestrator:
    model = get_model_for_mode(self._settings.provider, self._settings.model, settings=self._settings)
    return ProgramGenerationOrchestrator(
      repositories=self._repos,
      model=model,
      limits=get_generation_limits(self._settings),
      prompt_version=self._settings.prompt_version,
      pricing_table=build_pricing_table(self._settings.pricing_overrides),
    )

  async def process_job(self, job: JobRecord) -> JobRecord | None:
    """Execute a single queued job; jobs in any other state are returned untouched."""
    if job.status != "queued":
      return job
    claimed = await self._repos.jobs.claim_job(job.job_id)
    if claimed is None:
      self._logger.info("Job %s was claimed by another worker", job.job_id)
      return await self._repos.jobs.get_job(job.job_id)

    try:
      orchestrator = self._orchestrator_factory()
    except ValueError as exc:
      # Provider misconfiguration (unknown provider, missing API key).
      self._logger.error("Cannot start job %s: %s", job.job_id, exc)
      return await self._repos.jobs.transition_terminal(job.job_id, "failed", error_message=f"Generation service is not configured: {exc}", error_code="configuration_error")

    record = await orchestrator.run(claimed)
    return record or await self._repos.jobs.get_job(job.job_id)

  async def process_queue(self, limit: int = 5) -> list[JobRecord]:
    """Process a small batch of queued jobs."""
    queued = await self._repos.jobs.find_queued(limit=limit)
    results: list[JobRecord] = []
    for job in queued:
      processed = await self.process_job(job)
      if processed:
        results.append(processed)
    return results
