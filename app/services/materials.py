"""Material lifecycle: placeholder creation, reads, and the generation phase's final writes."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from app.api.models import MaterialCompleteRequest, MaterialCreateRequest, MaterialFailRequest, MaterialResponse
from app.config import Settings
from app.core.errors import ArtifactValidationError, MaterialNotFoundError, MaterialOwnershipError, MaterialStateError, PipelineError
from app.materials.artifacts import fallback_title, resolve_material_title, validate_artifact
from app.materials.models import MaterialRecord, MaterialStatus
from app.materials.params import normalize_generation_params, params_error_message
from app.storage.factory import _get_materials_repo
from app.storage.materials_repo import MaterialsRepository
from app.utils.ids import generate_material_id, utc_timestamp

logger = logging.getLogger(__name__)
# Generation writes are only legal while the material waits on generation.
_GENERATION_OWNED = frozenset({MaterialStatus.PENDING_AI_GENERATION})


class InvalidMaterialRequestError(PipelineError):
  pass


def _record_to_response(record: MaterialRecord) -> MaterialResponse:
  return MaterialResponse(
    material_id=record.material_id,
    kind=record.kind,
    title=record.title,
    status=record.status,
    content=record.content,
    source_file_name=record.source_file_name,
    source_text=record.source_text,
    generation_params=record.generation_params,
    created_at=record.created_at,
    updated_at=record.updated_at,
  )


def check_upload_size(size_bytes: int | None, settings: Settings) -> None:
  if size_bytes is not None and size_bytes > settings.max_upload_bytes:
    limit_mb = settings.max_upload_bytes // (1024 * 1024)
    raise InvalidMaterialRequestError(f"File is too large. Maximum size is {limit_mb}MB.")


async def load_owned_material(repo: MaterialsRepository, material_id: str, user_id: str) -> MaterialRecord:
  """Fetch a material, raising when it is missing or belongs to someone else."""
  record = await repo.get_material(material_id)
  if record is None:
    raise MaterialNotFoundError("Material not found.")
  if record.user_id != user_id:
    raise MaterialOwnershipError("Not authorized to access this material.")
  return record


async def create_material(request: MaterialCreateRequest, settings: Settings, *, user_id: str) -> MaterialResponse:
  """Create a file placeholder (awaiting extraction) or an inline-text material (awaiting generation)."""
  try:
    params = normalize_generation_params(request.kind, request.generation_params)
  except ValidationError as exc:
    raise InvalidMaterialRequestError(f"Invalid generation params: {params_error_message(exc)}") from exc

  timestamp = utc_timestamp()
  if request.file is not None:
    check_upload_size(request.file.size_bytes, settings)
    status = MaterialStatus.PENDING_EXTRACTION
    source_name = request.file.original_file_name
  else:
    # Inline text needs no extraction, so there is never a job for it.
    status = MaterialStatus.PENDING_AI_GENERATION
    source_name = None

  record = MaterialRecord(
    material_id=generate_material_id(),
    user_id=user_id,
    kind=request.kind,
    title=(request.title or "").strip() or fallback_title(request.kind, source_name),
    status=status,
    generation_params=params,
    source_file_name=source_name,
    source_text=request.source_text.strip() if request.source_text else None,
    storage_path=request.file.storage_path if request.file else None,
    created_at=timestamp,
    updated_at=timestamp,
  )
  await _get_materials_repo(settings).create_material(record)
  logger.info("Created material %s kind=%s status=%s", record.material_id, record.kind.value, record.status.value)
  return _record_to_response(record)


async def get_material(material_id: str, settings: Settings, *, user_id: str) -> MaterialResponse:
  record = await load_owned_material(_get_materials_repo(settings), material_id, user_id)
  return _record_to_response(record)


async def list_materials(settings: Settings, *, user_id: str) -> list[MaterialResponse]:
  """Return the caller's materials, newest first."""
  records = await _get_materials_repo(settings).list_materials(user_id)
  return [_record_to_response(record) for record in records]


async def complete_material(material_id: str, request: MaterialCompleteRequest, settings: Settings, *, user_id: str) -> MaterialResponse:
  """Persist generated content and move the material to COMPLETED."""
  repo = _get_materials_repo(settings)
  record = await load_owned_material(repo, material_id, user_id)
  try:
    content = validate_artifact(record.kind, request.content, source_name=record.source_file_name)
  except ArtifactValidationError:
    logger.warning("Rejected content for material %s", material_id)
    raise

  title = resolve_material_title(record.kind, content, requested=request.title, source_name=record.source_file_name)
  updated = await repo.update_material_if_status_in(material_id, _GENERATION_OWNED, status=MaterialStatus.COMPLETED, content=content, title=title)
  if updated is None:
    raise MaterialStateError(f"Material is {record.status.value}; only materials awaiting generation can be completed.")
  logger.info("Material %s transitioned %s -> %s", material_id, MaterialStatus.PENDING_AI_GENERATION.value, MaterialStatus.COMPLETED.value)
  return _record_to_response(updated)


async def fail_material(material_id: str, request: MaterialFailRequest, settings: Settings, *, user_id: str) -> MaterialResponse:
  """Record a generation failure; content stays null."""
  repo = _get_materials_repo(settings)
  record = await load_owned_material(repo, material_id, user_id)
  updated = await repo.update_material_if_status_in(material_id, _GENERATION_OWNED, status=MaterialStatus.AI_PROCESSING_FAILED)
  if updated is None:
    raise MaterialStateError(f"Material is {record.status.value}; only materials awaiting generation can be failed.")
  logger.info("Material %s transitioned %s -> %s: %s", material_id, MaterialStatus.PENDING_AI_GENERATION.value, MaterialStatus.AI_PROCESSING_FAILED.value, request.error_message)
  return _record_to_response(updated)
