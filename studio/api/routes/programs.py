import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from studio.api.models import GenerateProgramRequest, JobCreateResponse, ProgramDetailResponse
from studio.config import Settings, get_settings
from studio.services import jobs as job_service
from studio.services import programs as program_service

router = APIRouter()
logger = logging.getLogger("studio.api.routes.programs")


@router.post("/generate", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_program(  # noqa: B008
  request: GenerateProgramRequest,
  background_tasks: BackgroundTasks,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> JobCreateResponse:
  """Start a background program generation job."""
  return await job_service.create_job(request, settings, background_tasks)


@router.get("/{program_id}", response_model=ProgramDetailResponse)
async def get_program(  # noqa: B008
  program_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> ProgramDetailResponse:
  """Fetch a generated program with its workouts."""
  return await program_service.get_program_detail(program_id, settings)
