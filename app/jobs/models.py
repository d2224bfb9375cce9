"""Domain models for file extraction jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
  """Lifecycle of one extraction attempt, owned by the extraction worker."""

  PENDING_EXTRACTION = "PENDING_EXTRACTION"
  EXTRACTING = "EXTRACTING"
  TEXT_EXTRACTED_PENDING_AI = "TEXT_EXTRACTED_PENDING_AI"
  EXTRACTION_FAILED = "EXTRACTION_FAILED"
  EXTRACTION_UNSUPPORTED = "EXTRACTION_UNSUPPORTED"


# Statuses the client keeps polling through.
IN_FLIGHT_JOB_STATUSES = frozenset({JobStatus.PENDING_EXTRACTION, JobStatus.EXTRACTING})
FAILED_JOB_STATUSES = frozenset({JobStatus.EXTRACTION_FAILED, JobStatus.EXTRACTION_UNSUPPORTED})
TERMINAL_JOB_STATUSES = FAILED_JOB_STATUSES | {JobStatus.TEXT_EXTRACTED_PENDING_AI}


@dataclass
class JobRecord:
  """Represents one extraction attempt for one material."""

  job_id: str
  material_id: str
  user_id: str
  original_file_name: str
  file_type: str | None
  storage_path: str | None
  status: JobStatus
  created_at: str
  updated_at: str
  generation_params: dict[str, Any] = field(default_factory=dict)
  extracted_text: str | None = None
  error_message: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_JOB_STATUSES
