"""Artifact shapes stored as material content, plus lenient shape validation."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from app.core.errors import ArtifactValidationError
from app.materials.models import MaterialKind

logger = logging.getLogger(__name__)

BloomLevel = Literal["Remember", "Understand", "Apply", "Analyze", "Evaluate", "Create"]

DEFAULT_MATERIAL_TITLE = "Generated Material"

_FALLBACK_TITLES = {
  MaterialKind.TEST: "Generated Test",
  MaterialKind.FLASHCARDS: "Generated Flashcards",
  MaterialKind.NOTES: "Generated Notes",
}


class _ArtifactModel(BaseModel):
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class McqQuestion(_ArtifactModel):
  question_text: str = Field(min_length=1)
  options: list[str] = Field(min_length=2)
  correct_option_index: int = Field(ge=0)
  explanation: str | None = None
  bloom_level: BloomLevel | None = None

  @model_validator(mode="after")
  def _index_in_range(self) -> McqQuestion:
    if self.correct_option_index >= len(self.options):
      raise ValueError("correctOptionIndex is outside the options list.")
    return self


class DescriptiveQuestion(_ArtifactModel):
  question_text: str = Field(min_length=1)
  bloom_level: BloomLevel | None = None


class PracticeTestArtifact(_ArtifactModel):
  test_title: str
  questions: list[McqQuestion | DescriptiveQuestion] = Field(min_length=1)


class Flashcard(_ArtifactModel):
  front: str = Field(min_length=1)
  back: str = Field(min_length=1)


class FlashcardsArtifact(_ArtifactModel):
  title: str
  flashcards: list[Flashcard] = Field(min_length=1)


class NotesArtifact(_ArtifactModel):
  title: str
  notes_content: str = Field(min_length=1)


def fallback_title(kind: MaterialKind, source_name: str | None = None) -> str:
  """Title used when the model omits one: the source name, else a per-kind default."""
  if source_name and source_name.strip():
    return source_name.strip()[:100]
  return _FALLBACK_TITLES[MaterialKind(kind)]


def _valid_items(raw_items: Any, model: type[_ArtifactModel]) -> list[_ArtifactModel]:
  """Keep the items that validate against `model`; drop the rest."""
  if not isinstance(raw_items, list):
    return []
  items: list[_ArtifactModel] = []
  for raw in raw_items:
    try:
      items.append(model.model_validate(raw))
    except ValidationError:
      continue
  dropped = len(raw_items) - len(items)
  if dropped:
    logger.warning("Dropped %d malformed artifact item(s)", dropped)
  return items


def _text(value: Any) -> str | None:
  if isinstance(value, str) and value.strip():
    return value.strip()
  return None


def validate_artifact(kind: MaterialKind, raw: Any, *, source_name: str | None = None) -> dict[str, Any]:
  """Normalize a model-produced artifact to its stored shape.

  A missing title is replaced with a fallback. A missing or empty body
  (questions, flashcards, notes content) raises ArtifactValidationError.
  """
  if not isinstance(raw, dict):
    raise ArtifactValidationError("AI returned an empty or invalid response.")
  kind = MaterialKind(kind)

  if kind == MaterialKind.TEST:
    raw_questions = raw.get("questions") if isinstance(raw.get("questions"), list) else []
    # Items carrying options must validate as multiple choice; only option-less items may be descriptive.
    questions = [item for q in raw_questions for item in _valid_items([q], McqQuestion if isinstance(q, dict) and "options" in q else DescriptiveQuestion)]
    if not questions:
      raise ArtifactValidationError("AI response did not contain any usable questions.")
    title = _text(raw.get("testTitle")) or _text(raw.get("title")) or fallback_title(kind, source_name)
    artifact: _ArtifactModel = PracticeTestArtifact(test_title=title, questions=questions)
  elif kind == MaterialKind.FLASHCARDS:
    cards = _valid_items(raw.get("flashcards"), Flashcard)
    if not cards:
      raise ArtifactValidationError("AI response did not contain any usable flashcards.")
    artifact = FlashcardsArtifact(title=_text(raw.get("title")) or fallback_title(kind, source_name), flashcards=cards)
  else:
    body = _text(raw.get("notesContent"))
    if body is None:
      raise ArtifactValidationError("AI response did not contain notes content.")
    artifact = NotesArtifact(title=_text(raw.get("title")) or fallback_title(kind, source_name), notes_content=body)

  return artifact.model_dump(by_alias=True, exclude_none=True)


def artifact_title(kind: MaterialKind, content: dict[str, Any]) -> str | None:
  """Read the display title out of stored content."""
  key = "testTitle" if MaterialKind(kind) == MaterialKind.TEST else "title"
  return _text(content.get(key)) or _text(content.get("title"))


def resolve_material_title(kind: MaterialKind, content: dict[str, Any], *, requested: str | None = None, source_name: str | None = None) -> str:
  """Title fallback chain: explicit title, artifact title, source name, default."""
  for candidate in (requested, artifact_title(kind, content), source_name):
    if candidate and candidate.strip():
      return candidate.strip()[:100]
  return DEFAULT_MATERIAL_TITLE
