from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.errors import ArtifactValidationError
from app.materials.artifacts import DEFAULT_MATERIAL_TITLE, artifact_title, fallback_title, resolve_material_title, validate_artifact
from app.materials.models import MaterialKind
from app.materials.params import normalize_generation_params, params_error_message


def test_practice_test_keeps_order_and_drops_bad_items() -> None:
  raw = {
    "testTitle": "Photosynthesis",
    "questions": [
      {"questionText": "Where does it happen?", "options": ["Mitochondria", "Chloroplast"], "correctOptionIndex": 1, "bloomLevel": "Remember"},
      {"questionText": "Explain the light reactions."},
      {"questionText": "Broken", "options": ["A", "B"], "correctOptionIndex": 5},
      "not a question",
    ],
  }

  artifact = validate_artifact(MaterialKind.TEST, raw)

  assert artifact["testTitle"] == "Photosynthesis"
  assert [q["questionText"] for q in artifact["questions"]] == ["Where does it happen?", "Explain the light reactions."]
  assert artifact["questions"][0]["correctOptionIndex"] == 1
  assert "options" not in artifact["questions"][1]


def test_missing_title_uses_source_name_then_default() -> None:
  cards = {"flashcards": [{"front": "ATP", "back": "Energy currency"}]}

  assert validate_artifact(MaterialKind.FLASHCARDS, cards, source_name="bio.pdf")["title"] == "bio.pdf"
  assert validate_artifact(MaterialKind.FLASHCARDS, cards)["title"] == "Generated Flashcards"
  assert validate_artifact(MaterialKind.NOTES, {"notesContent": "# Cells"})["title"] == "Generated Notes"


@pytest.mark.parametrize(
  ("kind", "raw"),
  [
    (MaterialKind.TEST, {"testTitle": "Empty", "questions": []}),
    (MaterialKind.TEST, {"testTitle": "Bad", "questions": [{"options": ["A", "B"], "correctOptionIndex": 0}]}),
    (MaterialKind.FLASHCARDS, {"title": "Cards"}),
    (MaterialKind.NOTES, {"title": "Notes", "notesContent": "   "}),
    (MaterialKind.NOTES, ["not", "an", "object"]),
  ],
)
def test_missing_body_is_a_hard_failure(kind: MaterialKind, raw: object) -> None:
  with pytest.raises(ArtifactValidationError):
    validate_artifact(kind, raw)


def test_fallback_title_truncates_long_names() -> None:
  assert fallback_title(MaterialKind.TEST, "a" * 300) == "a" * 100
  assert fallback_title(MaterialKind.TEST) == "Generated Test"


def test_artifact_title_reads_kind_specific_key() -> None:
  assert artifact_title(MaterialKind.TEST, {"testTitle": "Quiz"}) == "Quiz"
  assert artifact_title(MaterialKind.NOTES, {"title": "Notes"}) == "Notes"
  assert artifact_title(MaterialKind.FLASHCARDS, {}) is None


def test_generation_params_fill_defaults() -> None:
  assert normalize_generation_params(MaterialKind.TEST, {}) == {"question_type": "multipleChoice", "number_of_questions": 10, "bloom_level": None}
  assert normalize_generation_params(MaterialKind.FLASHCARDS, None) == {"number_of_flashcards": 10}
  assert normalize_generation_params(MaterialKind.NOTES, {"note_length": "long"}) == {"note_length": "long"}


def test_generation_params_reject_unknown_and_out_of_range_values() -> None:
  with pytest.raises(ValidationError) as excinfo:
    normalize_generation_params(MaterialKind.FLASHCARDS, {"number_of_flashcards": 500})
  assert "number_of_flashcards" in params_error_message(excinfo.value)

  with pytest.raises(ValidationError):
    normalize_generation_params(MaterialKind.NOTES, {"question_type": "descriptive"})


def test_material_title_fallback_chain() -> None:
  quiz = {"testTitle": "Quiz", "questions": []}
  assert resolve_material_title(MaterialKind.TEST, quiz, requested="  My quiz ", source_name="cells.pdf") == "My quiz"
  assert resolve_material_title(MaterialKind.TEST, quiz, source_name="cells.pdf") == "Quiz"
  assert resolve_material_title(MaterialKind.NOTES, {"title": "  "}, source_name="x" * 150) == "x" * 100
  assert resolve_material_title(MaterialKind.FLASHCARDS, {}) == DEFAULT_MATERIAL_TITLE
