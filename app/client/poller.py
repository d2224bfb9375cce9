"""Session-scoped job poller that drives the client view-model and runs generation once."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from app.api.models import FileDescriptor, JobStatusResponse, MaterialResponse
from app.config import Settings
from app.jobs.models import FAILED_JOB_STATUSES, IN_FLIGHT_JOB_STATUSES, JobStatus
from app.materials.artifacts import resolve_material_title
from app.materials.models import MaterialKind

logger = logging.getLogger(__name__)

TIMED_OUT_MESSAGE = "Extraction timed out. Please try again."


class ClientPhase(str, Enum):
  PENDING_UPLOAD = "PENDING_UPLOAD"
  PENDING_EXTRACTION = "PENDING_EXTRACTION"
  EXTRACTING = "EXTRACTING"
  TEXT_EXTRACTED_PENDING_AI = "TEXT_EXTRACTED_PENDING_AI"
  EXTRACTION_FAILED = "EXTRACTION_FAILED"
  EXTRACTION_UNSUPPORTED = "EXTRACTION_UNSUPPORTED"
  AI_GENERATING_CLIENT = "AI_GENERATING_CLIENT"
  COMPLETED_AI_PROCESSED = "COMPLETED_AI_PROCESSED"
  AI_GENERATION_FAILED = "AI_GENERATION_FAILED"


TERMINAL_PHASES = frozenset({ClientPhase.EXTRACTION_FAILED, ClientPhase.EXTRACTION_UNSUPPORTED, ClientPhase.COMPLETED_AI_PROCESSED, ClientPhase.AI_GENERATION_FAILED})


@dataclass
class ProcessingJob:
  """Client view of one file (or inline text) moving through extraction and generation."""

  material_id: str
  kind: MaterialKind
  phase: ClientPhase
  progress_message: str
  started_at: float
  job_id: str | None = None
  file_name: str | None = None
  generation_params: dict[str, Any] = field(default_factory=dict)
  extracted_text: str | None = None
  error_message: str | None = None
  artifact: dict[str, Any] | None = None

  @property
  def is_terminal(self) -> bool:
    return self.phase in TERMINAL_PHASES

  def move(self, phase: ClientPhase, message: str, *, error: str | None = None) -> None:
    logger.info("Processing job %s phase %s -> %s", self.job_id or self.material_id, self.phase.value, phase.value)
    self.phase = phase
    self.progress_message = message
    if error is not None:
      self.error_message = error


@dataclass
class PollerSession:
  """State owned by one client session: the active job and the jobs already sent to generation."""

  active: ProcessingJob | None = None
  generated: set[str] = field(default_factory=set)

  @property
  def busy(self) -> bool:
    return self.active is not None and not self.active.is_terminal


class JobReader(Protocol):
  async def fetch_job(self, job_id: str) -> JobStatusResponse: ...


class Generator(Protocol):
  async def generate(self, kind: MaterialKind, text: str, params: dict[str, Any] | None = None, *, source_name: str | None = None) -> dict[str, Any]: ...


class MaterialWriter(Protocol):
  async def complete_material(self, material_id: str, content: dict[str, Any], *, title: str | None = None) -> MaterialResponse: ...

  async def fail_material(self, material_id: str, error_message: str) -> MaterialResponse: ...


class JobStarter(Protocol):
  async def create_material(self, kind: MaterialKind, *, title: str | None = None, file: FileDescriptor | None = None, source_text: str | None = None, generation_params: dict[str, Any] | None = None) -> MaterialResponse: ...

  async def start_job(self, material_id: str, file: FileDescriptor, generation_params: dict[str, Any] | None = None) -> str: ...


def progress_message_for(status: JobStatus, job: ProcessingJob, error_message: str | None = None) -> str:
  if status == JobStatus.PENDING_EXTRACTION:
    return "Waiting for text extraction to start..."
  if status == JobStatus.EXTRACTING:
    return f"Extracting text from {job.file_name or 'file'}..."
  if status == JobStatus.TEXT_EXTRACTED_PENDING_AI:
    return "Text extracted. Preparing AI generation..."
  if status == JobStatus.EXTRACTION_FAILED:
    return f"Extraction Failed: {error_message or 'Unknown error'}"
  return "File type not supported for direct extraction."


class ClientPoller:
  """Polls one active job on a fixed interval and triggers generation exactly once.

  The loop is single-task and cooperative: it sleeps between ticks, bounds each fetch
  with a request timeout, and gives up locally once the wall-clock ceiling from job
  creation passes. Remote rows are only read here; a local timeout never writes them.
  """

  def __init__(
    self,
    session: PollerSession,
    jobs: JobReader,
    generator: Generator,
    materials: MaterialWriter,
    *,
    interval_seconds: float = 5.0,
    timeout_seconds: float = 300.0,
    request_timeout_seconds: float = 10.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
  ) -> None:
    self.session = session
    self._jobs = jobs
    self._generator = generator
    self._materials = materials
    self._interval = interval_seconds
    self._timeout = timeout_seconds
    self._request_timeout = request_timeout_seconds
    self._clock = clock
    self._sleep = sleep

  @classmethod
  def from_settings(cls, settings: Settings, session: PollerSession, api: Any, **kwargs: Any) -> ClientPoller:
    """Build a poller whose collaborators are all served by one API client."""
    return cls(
      session,
      api,
      api,
      api,
      interval_seconds=settings.poll_interval_seconds,
      timeout_seconds=settings.poll_timeout_seconds,
      request_timeout_seconds=settings.poll_request_timeout_seconds,
      **kwargs,
    )

  def _begin(self, job: ProcessingJob) -> None:
    if self.session.busy:
      raise RuntimeError("This session is already processing a job.")
    self.session.active = job

  async def submit_file(self, starter: JobStarter, kind: MaterialKind, file: FileDescriptor, *, title: str | None = None, generation_params: dict[str, Any] | None = None) -> ProcessingJob:
    """Create the placeholder material, start its extraction job and track it to the end."""
    if self.session.busy:
      raise RuntimeError("This session is already processing a job.")
    material = await starter.create_material(kind, title=title, file=file, generation_params=generation_params)
    job_id = await starter.start_job(material.material_id, file, material.generation_params)
    return await self.track_job(job_id, material.material_id, kind, file_name=file.original_file_name, generation_params=material.generation_params)

  async def track_job(self, job_id: str, material_id: str, kind: MaterialKind, *, file_name: str | None = None, generation_params: dict[str, Any] | None = None, started_at: float | None = None) -> ProcessingJob:
    """Poll until extraction ends, then run generation on the extracted text."""
    job = ProcessingJob(
      job_id=job_id,
      material_id=material_id,
      kind=kind,
      file_name=file_name,
      generation_params=dict(generation_params or {}),
      phase=ClientPhase.PENDING_EXTRACTION,
      progress_message="Waiting for text extraction to start...",
      started_at=self._clock() if started_at is None else started_at,
    )
    self._begin(job)

    while True:
      if self._clock() - job.started_at >= self._timeout:
        logger.warning("Job %s timed out after %.0fs locally; server row left as-is.", job_id, self._timeout)
        job.move(ClientPhase.EXTRACTION_FAILED, TIMED_OUT_MESSAGE, error="timed out")
        return job

      try:
        snapshot = await asyncio.wait_for(self._jobs.fetch_job(job_id), timeout=self._request_timeout)
      except Exception as exc:  # noqa: BLE001
        message = str(exc) or type(exc).__name__
        logger.warning("Polling job %s failed: %s", job_id, message)
        job.move(ClientPhase.EXTRACTION_FAILED, f"Polling error: {message}", error=message)
        return job

      self._apply(job, snapshot)
      if snapshot.status in IN_FLIGHT_JOB_STATUSES:
        await self._sleep(self._interval)
        continue
      if snapshot.status == JobStatus.TEXT_EXTRACTED_PENDING_AI:
        await self._generate_once(job, job_id)
      return job

  async def run_inline(self, material_id: str, kind: MaterialKind, text: str, *, generation_params: dict[str, Any] | None = None, source_name: str | None = None) -> ProcessingJob:
    """Generate from inline text; there is no extraction job to poll."""
    job = ProcessingJob(
      material_id=material_id,
      kind=kind,
      file_name=source_name,
      generation_params=dict(generation_params or {}),
      phase=ClientPhase.TEXT_EXTRACTED_PENDING_AI,
      progress_message="Text ready. Preparing AI generation...",
      started_at=self._clock(),
      extracted_text=text,
    )
    self._begin(job)
    await self._generate_once(job, f"material:{material_id}")
    return job

  def _apply(self, job: ProcessingJob, snapshot: JobStatusResponse) -> None:
    # The worker may skip states between ticks; map whatever arrived.
    job.material_id = snapshot.material_id or job.material_id
    message = progress_message_for(snapshot.status, job, snapshot.error_message)
    if snapshot.status == JobStatus.TEXT_EXTRACTED_PENDING_AI:
      job.extracted_text = snapshot.extracted_text
    error = snapshot.error_message if snapshot.status in FAILED_JOB_STATUSES else None
    phase = ClientPhase(snapshot.status.value)
    if phase != job.phase or message != job.progress_message:
      job.move(phase, message, error=error)

  async def _generate_once(self, job: ProcessingJob, key: str) -> None:
    if key in self.session.generated:
      logger.info("Generation already triggered for %s; ignoring repeat.", key)
      return
    self.session.generated.add(key)
    job.move(ClientPhase.AI_GENERATING_CLIENT, f"Generating {job.kind.value} with AI...")

    if not job.extracted_text or not job.extracted_text.strip():
      await self._fail_generation(job, "No extracted text available for generation.")
      return

    try:
      artifact = await self._generator.generate(job.kind, job.extracted_text, job.generation_params, source_name=job.file_name)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Generation failed for material %s: %s", job.material_id, exc)
      await self._fail_generation(job, str(exc) or type(exc).__name__)
      return

    job.artifact = artifact
    job.progress_message = "Saving final content..."
    try:
      await self._materials.complete_material(job.material_id, artifact, title=resolve_material_title(job.kind, artifact, source_name=job.file_name))
    except Exception as exc:  # noqa: BLE001
      logger.warning("Saving material %s failed: %s", job.material_id, exc)
      await self._fail_generation(job, str(exc) or type(exc).__name__, progress_message=f"Save failed: {exc}")
      return

    job.move(ClientPhase.COMPLETED_AI_PROCESSED, "Successfully generated and saved!")
    self.session.active = None

  async def _fail_generation(self, job: ProcessingJob, message: str, *, progress_message: str | None = None) -> None:
    job.move(ClientPhase.AI_GENERATION_FAILED, progress_message or f"Error: {message}", error=message)
    try:
      await self._materials.fail_material(job.material_id, message)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Could not record generation failure for material %s: %s", job.material_id, exc)
