"""Per-kind generation parameters with their defaults."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.materials.artifacts import BloomLevel
from app.materials.models import MaterialKind


class PracticeTestParams(BaseModel):
  question_type: Literal["multipleChoice", "descriptive"] = "multipleChoice"
  number_of_questions: int = Field(default=10, ge=1, le=100)
  bloom_level: BloomLevel | None = None
  model_config = ConfigDict(extra="forbid")


class FlashcardsParams(BaseModel):
  number_of_flashcards: int = Field(default=10, ge=1, le=50)
  model_config = ConfigDict(extra="forbid")


class NotesParams(BaseModel):
  note_length: Literal["short", "medium", "long"] = "medium"
  model_config = ConfigDict(extra="forbid")


GenerationParams = PracticeTestParams | FlashcardsParams | NotesParams

_PARAMS_BY_KIND: dict[MaterialKind, type[BaseModel]] = {
  MaterialKind.TEST: PracticeTestParams,
  MaterialKind.FLASHCARDS: FlashcardsParams,
  MaterialKind.NOTES: NotesParams,
}


def parse_generation_params(kind: MaterialKind, raw: dict[str, Any] | None) -> GenerationParams:
  """Validate raw params for `kind`, filling defaults. Raises pydantic ValidationError."""
  return _PARAMS_BY_KIND[MaterialKind(kind)].model_validate(raw or {})


def normalize_generation_params(kind: MaterialKind, raw: dict[str, Any] | None) -> dict[str, Any]:
  """Return the JSON snapshot persisted on materials and jobs."""
  return parse_generation_params(kind, raw).model_dump(mode="json")


def params_error_message(exc: ValidationError) -> str:
  parts = []
  for error in exc.errors():
    location = ".".join(str(item) for item in error.get("loc", ())) or "params"
    parts.append(f"{location}: {error.get('msg')}")
  return "; ".join(parts)
