import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse
from app.config import Settings, get_settings
from app.core.security import get_current_user_id
from app.services import jobs as job_service

router = APIRouter()
logger = logging.getLogger("app.api.routes.jobs")


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_job(  # noqa: B008
  request: JobCreateRequest,
  background_tasks: BackgroundTasks,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
) -> JobCreateResponse:
  """Create an extraction job and return its id before the worker runs."""
  return await job_service.initiate_extraction(request, settings, background_tasks, user_id=user_id)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the current status of an extraction job."""
  return await job_service.get_job_status(job_id, settings, user_id=user_id)
