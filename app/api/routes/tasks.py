from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel, Field

from app.config import Settings, get_settings
from app.core.security import require_task_secret
from app.services.jobs import process_extraction_sync

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


class ExtractTextPayload(BaseModel):
  job_id: str = Field(min_length=1)


@router.post("/extract-text", status_code=status.HTTP_200_OK)
async def extract_text_task(payload: ExtractTextPayload, background_tasks: BackgroundTasks, settings: Annotated[Settings, Depends(get_settings)]) -> dict[str, str]:
  """
  Handler for Cloud Tasks (and local simulation).
  Acknowledges quickly and runs extraction after the response so dispatchers never wait on it.
  """
  logger.info("Received extract-text task for job %s", payload.job_id)
  background_tasks.add_task(process_extraction_sync, payload.job_id, settings)
  return {"status": "accepted"}
