"""Domain models for study materials and their status projection."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.jobs.models import JobStatus


class MaterialKind(str, Enum):
  """Artifact kinds a user can ask for."""

  TEST = "test"
  FLASHCARDS = "flashcards"
  NOTES = "notes"


class MaterialStatus(str, Enum):
  """Coarse material lifecycle maintained by the current phase owner."""

  PENDING_EXTRACTION = "PENDING_EXTRACTION"
  PENDING_AI_GENERATION = "PENDING_AI_GENERATION"
  COMPLETED = "COMPLETED"
  EXTRACTION_FAILED = "EXTRACTION_FAILED"
  EXTRACTION_UNSUPPORTED = "EXTRACTION_UNSUPPORTED"
  AI_PROCESSING_FAILED = "AI_PROCESSING_FAILED"


# Absorbing states; nothing in the pipeline moves a material out of these.
TERMINAL_MATERIAL_STATUSES = frozenset(
  {
    MaterialStatus.COMPLETED,
    MaterialStatus.EXTRACTION_FAILED,
    MaterialStatus.EXTRACTION_UNSUPPORTED,
    MaterialStatus.AI_PROCESSING_FAILED,
  }
)

_JOB_TO_MATERIAL_STATUS: dict[JobStatus, MaterialStatus] = {
  JobStatus.PENDING_EXTRACTION: MaterialStatus.PENDING_EXTRACTION,
  JobStatus.EXTRACTING: MaterialStatus.PENDING_EXTRACTION,
  JobStatus.TEXT_EXTRACTED_PENDING_AI: MaterialStatus.PENDING_AI_GENERATION,
  JobStatus.EXTRACTION_FAILED: MaterialStatus.EXTRACTION_FAILED,
  JobStatus.EXTRACTION_UNSUPPORTED: MaterialStatus.EXTRACTION_UNSUPPORTED,
}


def material_status_for_job(job_status: JobStatus) -> MaterialStatus:
  """Project a job status onto the material status it implies."""
  return _JOB_TO_MATERIAL_STATUS[JobStatus(job_status)]


@dataclass
class MaterialRecord:
  """Persisted parent record for a requested study artifact."""

  material_id: str
  user_id: str
  kind: MaterialKind
  title: str
  status: MaterialStatus
  created_at: str
  updated_at: str
  generation_params: dict[str, Any] = field(default_factory=dict)
  content: dict[str, Any] | None = None
  source_file_name: str | None = None
  source_text: str | None = None
  storage_path: str | None = None

  @property
  def is_placeholder(self) -> bool:
    """A material waiting on extraction with nothing generated yet."""
    return self.status == MaterialStatus.PENDING_EXTRACTION and self.content is None
