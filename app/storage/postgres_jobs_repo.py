"""Postgres-backed repository for extraction jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Collection

from sqlalchemy import update

from app.core.database import get_session_factory
from app.jobs.models import JobRecord, JobStatus
from app.schema.jobs import FileProcessingJob
from app.storage.jobs_repo import JobsRepository
from app.utils.ids import utc_timestamp

logger = logging.getLogger(__name__)


class PostgresJobsRepository(JobsRepository):
  """Persist extraction jobs to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> None:
    async with self._session_factory() as session:
      job = FileProcessingJob(
        job_id=record.job_id,
        material_id=record.material_id,
        user_id=record.user_id,
        original_file_name=record.original_file_name,
        file_type=record.file_type,
        storage_path=record.storage_path,
        status=JobStatus(record.status).value,
        extracted_text=record.extracted_text,
        error_message=record.error_message,
        generation_params=record.generation_params,
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(job)
      await session.commit()

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(FileProcessingJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def update_job_if_status_in(self, job_id: str, expected: Collection[JobStatus], *, status: JobStatus, extracted_text: str | None = None, error_message: str | None = None) -> JobRecord | None:
    # The status predicate and the write are one statement, so concurrent callers serialize on the row lock.
    expected_values = [JobStatus(value).value for value in expected]
    stmt = (
      update(FileProcessingJob)
      .where(FileProcessingJob.job_id == job_id, FileProcessingJob.status.in_(expected_values))
      .values(status=JobStatus(status).value, extracted_text=extracted_text, error_message=error_message, updated_at=utc_timestamp())
      .returning(FileProcessingJob)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        logger.debug("Guarded update refused for job %s (expected %s)", job_id, expected_values)
        return None
      return self._model_to_record(row)

  @staticmethod
  def _model_to_record(row: FileProcessingJob) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      material_id=row.material_id,
      user_id=row.user_id,
      original_file_name=row.original_file_name,
      file_type=row.file_type,
      storage_path=row.storage_path,
      status=JobStatus(row.status),
      extracted_text=row.extracted_text,
      error_message=row.error_message,
      generation_params=dict(row.generation_params or {}),
      created_at=row.created_at,
      updated_at=row.updated_at,
    )
