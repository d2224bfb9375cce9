from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator

from app.jobs.models import JobStatus
from app.materials.models import MaterialKind, MaterialStatus


class FileDescriptor(BaseModel):
  """An uploaded file the client wants extracted."""

  original_file_name: StrictStr = Field(min_length=1, max_length=255)
  file_type: StrictStr = Field(min_length=1, description="MIME type reported at upload.", examples=["application/pdf"])
  storage_path: StrictStr = Field(min_length=1, description="`bucket/object` path of the uploaded blob.")
  size_bytes: int | None = Field(default=None, ge=0)
  model_config = ConfigDict(extra="forbid")


class MaterialCreateRequest(BaseModel):
  """Create a material from exactly one source: a file reference or inline text."""

  kind: MaterialKind
  title: StrictStr | None = Field(default=None, max_length=200)
  file: FileDescriptor | None = None
  source_text: StrictStr | None = Field(default=None, min_length=1)
  generation_params: dict[str, Any] = Field(default_factory=dict)
  model_config = ConfigDict(extra="forbid")

  @model_validator(mode="after")
  def _exactly_one_source(self) -> MaterialCreateRequest:
    has_file = self.file is not None
    has_text = self.source_text is not None and self.source_text.strip() != ""
    if has_file == has_text:
      raise ValueError("Provide exactly one of `file` or `source_text`.")
    return self


class MaterialResponse(BaseModel):
  material_id: str
  kind: MaterialKind
  title: str
  status: MaterialStatus
  content: dict[str, Any] | None = None
  source_file_name: str | None = None
  source_text: str | None = None
  generation_params: dict[str, Any] = Field(default_factory=dict)
  created_at: str
  updated_at: str


class MaterialCompleteRequest(BaseModel):
  content: dict[str, Any]
  title: StrictStr | None = Field(default=None, max_length=200)
  model_config = ConfigDict(extra="forbid")


class MaterialFailRequest(BaseModel):
  error_message: StrictStr = Field(min_length=1, max_length=2000)
  model_config = ConfigDict(extra="forbid")


class JobCreateRequest(BaseModel):
  material_id: StrictStr = Field(min_length=1)
  file: FileDescriptor
  generation_params: dict[str, Any] = Field(default_factory=dict)
  model_config = ConfigDict(extra="forbid")


class JobCreateResponse(BaseModel):
  job_id: str


class JobStatusResponse(BaseModel):
  job_id: str
  material_id: str
  status: JobStatus
  original_file_name: str
  file_type: str | None = None
  extracted_text: str | None = None
  error_message: str | None = None
  created_at: str
  updated_at: str


class GenerateRequest(BaseModel):
  kind: MaterialKind
  text: StrictStr = Field(min_length=1)
  params: dict[str, Any] = Field(default_factory=dict)
  source_name: StrictStr | None = Field(default=None, max_length=255)
  model_config = ConfigDict(extra="forbid")


class GenerateResponse(BaseModel):
  kind: MaterialKind
  artifact: dict[str, Any]
