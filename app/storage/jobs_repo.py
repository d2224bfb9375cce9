"""Storage interfaces for extraction jobs."""

from __future__ import annotations

from collections.abc import Collection
from typing import Protocol

from app.jobs.models import JobRecord, JobStatus


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: JobRecord) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def update_job_if_status_in(self, job_id: str, expected: Collection[JobStatus], *, status: JobStatus, extracted_text: str | None = None, error_message: str | None = None) -> JobRecord | None:
    """Move a job to `status` only while its stored status is one of `expected`.

    Text and error columns are always overwritten so a transition never leaves
    both populated. Returns the updated record, or None when the guard refused
    the write (unknown id or status already moved on).
    """
