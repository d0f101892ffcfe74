import logging

from fastapi import BackgroundTasks, HTTPException, status

from studio.api.models import GenerateProgramRequest, JobCreateResponse, JobStatusResponse
from studio.config import Settings, get_generation_limits
from studio.generation.chunk_planner import plan_chunks
from studio.generation.progress import total_steps
from studio.jobs.models import JobRecord
from studio.storage.factory import _get_jobs_repo, get_repositories
from studio.utils.ids import generate_job_id
from studio.utils.timefmt import now_iso

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."
_QUEUED_MESSAGE = "Program generation started"


def _job_status_from_record(record: JobRecord) -> JobStatusResponse:
  """Convert a persisted job record into an API response payload."""
  return JobStatusResponse(
    job_id=record.job_id,
    status=record.status,
    progress_percent=record.progress_percent,
    current_step=record.current_step,
    total_steps=record.total_steps,
    progress_message=record.progress_message,
    error_message=record.error_message,
    program_id=record.program_id,
  )


async def create_job(request: GenerateProgramRequest, settings: Settings, background_tasks: BackgroundTasks) -> JobCreateResponse:
  """Create a queued program generation job and schedule it."""
  repo = _get_jobs_repo(settings)

  # Idempotency Check: Return existing job if the key is already present.
  if request.idempotency_key:
    existing = await repo.find_by_idempotency_key(request.idempotency_key)
    if existing:
      logger.info("Retrieved existing job %s for idempotency key %s", existing.job_id, request.idempotency_key)
      return JobCreateResponse(job_id=existing.job_id, status=existing.status, message=existing.progress_message or _QUEUED_MESSAGE)

  # Precompute the step count so the client can render a progress bar immediately.
  chunks = plan_chunks(request.total_weeks, request.sessions_per_week, get_generation_limits(settings))
  timestamp = now_iso()
  record = JobRecord(
    job_id=generate_job_id(),
    request=request.to_job_payload(),
    status="queued",
    created_at=timestamp,
    updated_at=timestamp,
    trainer_id=request.trainer_id,
    total_steps=total_steps(len(chunks)),
    progress_message="Queued",
    logs=["Job queued."],
    idempotency_key=request.idempotency_key,
  )
  await repo.create_job(record)
  logger.info("Created job %s: %d weeks x %d sessions in %d chunk(s)", record.job_id, request.total_weeks, request.sessions_per_week, len(chunks))
  trigger_job_processing(background_tasks, record.job_id, settings)
  return JobCreateResponse(job_id=record.job_id, status=record.status, message=_QUEUED_MESSAGE)


async def get_job_status(job_id: str, settings: Settings) -> JobStatusResponse:
  """Fetch the progress of a background job."""
  repo = _get_jobs_repo(settings)
  record = await repo.get_job(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return _job_status_from_record(record)


async def process_job_sync(job_id: str, settings: Settings) -> JobRecord | None:
  """Run a queued job in the current task."""
  from studio.jobs.worker import JobProcessor

  repositories = get_repositories(settings)
  record = await repositories.jobs.get_job(job_id)
  if record is None:
    return None

  processor = JobProcessor(repositories=repositories, settings=settings)
  try:
    return await processor.process_job(record)
  except Exception as exc:  # noqa: BLE001
    logger.error("Job processing failed outside the deadline race for job %s: %s", job_id, exc, exc_info=True)
    # Do not leave the job stuck in a non-terminal state.
    return await repositories.jobs.transition_terminal(job_id, "failed", error_message="Program generation failed unexpectedly.", error_code="internal_error")


def trigger_job_processing(background_tasks: BackgroundTasks, job_id: str, settings: Settings) -> None:
  """Schedule processing after the response is sent."""
  if not settings.jobs_auto_process:
    return
  background_tasks.add_task(process_job_sync, job_id, settings)
