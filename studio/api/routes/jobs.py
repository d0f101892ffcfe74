import logging

from fastapi import APIRouter, Depends

from studio.api.models import JobStatusResponse
from studio.config import Settings, get_settings
from studio.services import jobs as job_service

router = APIRouter()
logger = logging.getLogger("studio.api.routes.jobs")


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the progress of a background generation job."""
  return await job_service.get_job_status(job_id, settings)
