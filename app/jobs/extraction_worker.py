"""Stateless extraction worker: job id in, stored status out."""

from __future__ import annotations

import logging
from typing import Protocol

from app.core.errors import ExtractionError, UnsupportedFormatError
from app.extraction.registry import ExtractorRegistry
from app.jobs.models import JobRecord, JobStatus
from app.materials.models import MaterialStatus, material_status_for_job
from app.storage.jobs_repo import JobsRepository
from app.storage.materials_repo import MaterialsRepository

logger = logging.getLogger(__name__)

MISSING_DETAILS_MESSAGE = "Missing storage_path or file_type in job details."
EMPTY_TEXT_MESSAGE = "No text content could be extracted from the file."

_CLAIMABLE = frozenset({JobStatus.PENDING_EXTRACTION})
_OWNED = frozenset({JobStatus.EXTRACTING})
# The worker only mirrors onto a material it still owns.
_MIRRORABLE_MATERIAL = frozenset({MaterialStatus.PENDING_EXTRACTION})


class BlobStore(Protocol):
  async def download(self, path: str) -> bytes:
    """Return object bytes, raising BlobNotFoundError when absent."""


class ExtractionWorker:
  """Runs one extraction attempt against the shared store.

  Every write is a status-guarded row update: the claim only succeeds from
  PENDING_EXTRACTION and terminal writes only succeed from EXTRACTING, so a
  duplicate or late invocation leaves rows untouched. Failures never escape
  `run_extraction`; they become a stored status and message.
  """

  def __init__(self, jobs_repo: JobsRepository, materials_repo: MaterialsRepository, blob_store: BlobStore, registry: ExtractorRegistry) -> None:
    self._jobs_repo = jobs_repo
    self._materials_repo = materials_repo
    self._blob_store = blob_store
    self._registry = registry

  async def run_extraction(self, job_id: str) -> JobRecord | None:
    """Process one job; returns the terminal record this invocation wrote, else None."""
    try:
      return await self._run(job_id)
    except Exception as exc:  # noqa: BLE001
      logger.error("Extraction worker crashed for job %s", job_id, exc_info=True)
      return await self._fail_after_crash(job_id, exc)

  async def _run(self, job_id: str) -> JobRecord | None:
    job = await self._jobs_repo.get_job(job_id)
    if job is None:
      logger.info("Job %s not found; nothing to extract.", job_id)
      return None

    claimed = await self._jobs_repo.update_job_if_status_in(job_id, _CLAIMABLE, status=JobStatus.EXTRACTING)
    if claimed is None:
      logger.info("Job %s already handled (status %s); skipping duplicate invocation.", job_id, job.status.value)
      return None
    logger.info("Job %s transitioned %s -> %s", job_id, JobStatus.PENDING_EXTRACTION.value, JobStatus.EXTRACTING.value)
    await self._mirror(claimed, JobStatus.EXTRACTING)

    if not claimed.storage_path or not claimed.file_type:
      return await self._finish(claimed, JobStatus.EXTRACTION_FAILED, error_message=MISSING_DETAILS_MESSAGE)

    # Unsupported formats short-circuit before any download or parse.
    try:
      extractor = self._registry.resolve(claimed.file_type)
    except UnsupportedFormatError as exc:
      return await self._finish(claimed, JobStatus.EXTRACTION_UNSUPPORTED, error_message=str(exc))

    try:
      data = await self._blob_store.download(claimed.storage_path)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Download failed for job %s path=%s: %s", job_id, claimed.storage_path, exc)
      return await self._finish(claimed, JobStatus.EXTRACTION_FAILED, error_message=f"File download failed: {exc}")

    try:
      text = await extractor.extract(data, mime_type=claimed.file_type)
    except UnsupportedFormatError as exc:
      return await self._finish(claimed, JobStatus.EXTRACTION_UNSUPPORTED, error_message=str(exc))
    except ExtractionError as exc:
      return await self._finish(claimed, JobStatus.EXTRACTION_FAILED, error_message=str(exc))
    except Exception as exc:  # noqa: BLE001
      logger.warning("Extractor raised for job %s: %s", job_id, exc, exc_info=True)
      return await self._finish(claimed, JobStatus.EXTRACTION_FAILED, error_message=f"Unexpected error during extraction: {exc}")

    text = (text or "").strip()
    if not text:
      return await self._finish(claimed, JobStatus.EXTRACTION_FAILED, error_message=EMPTY_TEXT_MESSAGE)
    return await self._finish(claimed, JobStatus.TEXT_EXTRACTED_PENDING_AI, extracted_text=text)

  async def _finish(self, job: JobRecord, status: JobStatus, *, extracted_text: str | None = None, error_message: str | None = None) -> JobRecord | None:
    updated = await self._jobs_repo.update_job_if_status_in(job.job_id, _OWNED, status=status, extracted_text=extracted_text, error_message=error_message)
    if updated is None:
      logger.info("Job %s left EXTRACTING before this worker finished; dropping %s.", job.job_id, status.value)
      return None
    logger.info("Job %s transitioned %s -> %s%s", job.job_id, JobStatus.EXTRACTING.value, status.value, f" ({error_message})" if error_message else "")
    await self._mirror(updated, status, source_text=extracted_text)
    return updated

  async def _mirror(self, job: JobRecord, status: JobStatus, *, source_text: str | None = None) -> None:
    target = material_status_for_job(status)
    mirrored = await self._materials_repo.update_material_if_status_in(job.material_id, _MIRRORABLE_MATERIAL, status=target, source_text=source_text)
    if mirrored is None:
      logger.info("Material %s no longer owned by extraction; skipped mirror to %s.", job.material_id, target.value)

  async def _fail_after_crash(self, job_id: str, exc: Exception) -> JobRecord | None:
    try:
      job = await self._jobs_repo.get_job(job_id)
      if job is None or job.status != JobStatus.EXTRACTING:
        return None
      return await self._finish(job, JobStatus.EXTRACTION_FAILED, error_message=f"Unexpected error during extraction: {exc}")
    except Exception:  # noqa: BLE001
      logger.error("Could not record crash for job %s; it stays EXTRACTING.", job_id, exc_info=True)
      return None
