"""Extraction jobs: initiation, dispatch, status reads and the worker entrypoint."""

from __future__ import annotations

import logging

from fastapi import BackgroundTasks
from pydantic import ValidationError

from app.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse
from app.config import Settings
from app.core.errors import MaterialNotFoundError, MaterialOwnershipError, MaterialStateError
from app.extraction.factory import build_extractor_registry
from app.jobs.extraction_worker import ExtractionWorker
from app.jobs.models import JobRecord, JobStatus
from app.materials.params import normalize_generation_params, params_error_message
from app.services.materials import InvalidMaterialRequestError, check_upload_size, load_owned_material
from app.services.storage_client import build_storage_client
from app.services.tasks.factory import get_task_enqueuer
from app.services.tasks.interface import EXTRACT_TEXT_WORKER
from app.storage.factory import _get_jobs_repo, _get_materials_repo
from app.utils.ids import generate_job_id, utc_timestamp

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."


def _job_status_from_record(record: JobRecord) -> JobStatusResponse:
  """Convert a persisted job record into an API response payload."""
  return JobStatusResponse(
    job_id=record.job_id,
    material_id=record.material_id,
    status=record.status,
    original_file_name=record.original_file_name,
    file_type=record.file_type,
    extracted_text=record.extracted_text,
    error_message=record.error_message,
    created_at=record.created_at,
    updated_at=record.updated_at,
  )


async def initiate_extraction(request: JobCreateRequest, settings: Settings, background_tasks: BackgroundTasks, *, user_id: str) -> JobCreateResponse:
  """Create an extraction job for a placeholder material and dispatch the worker without awaiting it."""
  materials_repo = _get_materials_repo(settings)
  material = await load_owned_material(materials_repo, request.material_id, user_id)
  if not material.is_placeholder:
    raise MaterialStateError(f"Material is {material.status.value}; extraction can only start for a placeholder awaiting extraction.")
  check_upload_size(request.file.size_bytes, settings)

  # The job keeps its own params snapshot so later edits to the material cannot change an in-flight run.
  try:
    params = normalize_generation_params(material.kind, request.generation_params or material.generation_params)
  except ValidationError as exc:
    raise InvalidMaterialRequestError(f"Invalid generation params: {params_error_message(exc)}") from exc

  timestamp = utc_timestamp()
  record = JobRecord(
    job_id=generate_job_id(),
    material_id=material.material_id,
    user_id=user_id,
    original_file_name=request.file.original_file_name,
    file_type=request.file.file_type,
    storage_path=request.file.storage_path,
    status=JobStatus.PENDING_EXTRACTION,
    generation_params=params,
    created_at=timestamp,
    updated_at=timestamp,
  )
  await _get_jobs_repo(settings).create_job(record)
  logger.info("Created extraction job %s for material %s file_type=%s", record.job_id, material.material_id, record.file_type)
  trigger_extraction(background_tasks, record.job_id, settings)
  return JobCreateResponse(job_id=record.job_id)


async def _dispatch_extraction(job_id: str, settings: Settings) -> None:
  try:
    await get_task_enqueuer(settings).enqueue(EXTRACT_TEXT_WORKER, {"job_id": job_id})
  except Exception as exc:  # noqa: BLE001
    # The job still reads PENDING_EXTRACTION, so the client poller times out on it instead of hanging.
    logger.error("Failed to dispatch extraction for job %s: %s", job_id, exc, exc_info=True)


def trigger_extraction(background_tasks: BackgroundTasks, job_id: str, settings: Settings) -> None:
  """Schedule the worker invocation after the response is sent."""
  if not settings.jobs_auto_process:
    logger.info("Auto-processing disabled; job %s left pending", job_id)
    return
  background_tasks.add_task(_dispatch_extraction, job_id, settings)


async def get_job_status(job_id: str, settings: Settings, *, user_id: str) -> JobStatusResponse:
  """Fetch the current job row for its owner."""
  record = await _get_jobs_repo(settings).get_job(job_id)
  if record is None:
    raise MaterialNotFoundError(_JOB_NOT_FOUND_MSG)
  if record.user_id != user_id:
    raise MaterialOwnershipError("Not authorized to access this job.")
  return _job_status_from_record(record)


def build_extraction_worker(settings: Settings) -> ExtractionWorker:
  return ExtractionWorker(
    jobs_repo=_get_jobs_repo(settings),
    materials_repo=_get_materials_repo(settings),
    blob_store=build_storage_client(settings),
    registry=build_extractor_registry(settings),
  )


async def process_extraction_sync(job_id: str, settings: Settings) -> JobRecord | None:
  """Run one extraction job to a terminal state."""
  try:
    worker = build_extraction_worker(settings)
  except Exception as exc:  # noqa: BLE001
    # Collaborators failed to build; the job stays pending and the client times out on it.
    logger.error("Could not start extraction for job %s: %s", job_id, exc, exc_info=True)
    return None
  return await worker.run_extraction(job_id)
