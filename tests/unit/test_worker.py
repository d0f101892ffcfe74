from __future__ import annotations

from dataclasses import replace

import pytest

from studio.ai.providers.anthropic import AnthropicModel
from studio.ai.router import ProviderMode, get_model_for_mode, get_provider_for_mode
from studio.config import GenerationLimits, Settings, get_settings
from studio.generation.orchestrator import ProgramGenerationOrchestrator
from studio.jobs.worker import JobProcessor
from tests.support import ScriptedModel, bodyweight_catalog, build_repositories, manual_request, program_responder, seed_job


def _settings(**overrides) -> Settings:
  return replace(get_settings(), **overrides)


def test_unknown_provider_mode_is_rejected() -> None:
  with pytest.raises(ValueError, match="Unsupported provider mode"):
    get_provider_for_mode("mystery")


def test_router_builds_the_configured_model() -> None:
  model = get_model_for_mode(ProviderMode.ANTHROPIC, "claude-haiku-4-5", settings=_settings(anthropic_api_key="sk-test"))
  assert isinstance(model, AnthropicModel)
  assert model.name == "claude-haiku-4-5"


@pytest.mark.anyio
async def test_misconfigured_provider_fails_the_job() -> None:
  repositories = build_repositories(bodyweight_catalog())
  job = await seed_job(repositories, manual_request(2, 3))
  processor = JobProcessor(repositories=repositories, settings=_settings(provider="mystery"))
  record = await processor.process_job(job)
  assert record.status == "failed"
  assert record.error_code == "configuration_error"
  assert "Unsupported provider mode" in record.error_message


@pytest.mark.anyio
async def test_only_queued_jobs_are_processed(limits: GenerationLimits) -> None:
  repositories = build_repositories(bodyweight_catalog())
  model = ScriptedModel(program_responder(3))

  def _factory() -> ProgramGenerationOrchestrator:
    return ProgramGenerationOrchestrator(repositories=repositories, model=model, limits=limits)

  processor = JobProcessor(repositories=repositories, settings=_settings(), orchestrator_factory=_factory)
  job = await seed_job(repositories, manual_request(2, 3))
  first = await processor.process_job(job)
  assert first.status == "completed"

  # A stale queued snapshot of the same job cannot trigger a second run.
  again = await processor.process_job(job)
  assert again.status == "completed"
  assert len(model.calls) == 1


@pytest.mark.anyio
async def test_process_queue_drains_queued_jobs(limits: GenerationLimits) -> None:
  repositories = build_repositories(bodyweight_catalog())
  model = ScriptedModel(program_responder(2))
  processor = JobProcessor(repositories=repositories, settings=_settings(), orchestrator_factory=lambda: ProgramGenerationOrchestrator(repositories=repositories, model=model, limits=limits))
  await seed_job(repositories, manual_request(1, 2), job_id="job-a")
  await seed_job(repositories, manual_request(2, 2), job_id="job-b")
  results = await processor.process_queue()
  assert sorted((record.job_id, record.status) for record in results) == [("job-a", "completed"), ("job-b", "completed")]
