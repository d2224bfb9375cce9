"""Prompt builders for each artifact kind."""

from __future__ import annotations

from app.materials.models import MaterialKind
from app.materials.params import FlashcardsParams, GenerationParams, NotesParams, PracticeTestParams

_NOTE_LENGTH_GUIDE = {
  "short": "readable in about 3 minutes; very concise",
  "medium": "readable in about 7 minutes; balanced detail",
  "long": "readable in about 10-12 minutes; comprehensive",
}

_MATH_RULE = "Use LaTeX for formulas and scientific notation ($...$ inline, $$...$$ for display)."


def _test_prompt(params: PracticeTestParams, text: str) -> str:
  if params.question_type == "multipleChoice":
    shape = '{"testTitle": str, "questions": [{"questionText": str, "options": [str, ...], "correctOptionIndex": int, "explanation": str, "bloomLevel": str}]}'
    rules = "Each question needs at least two options and a 0-based correctOptionIndex pointing at the right one."
  else:
    shape = '{"testTitle": str, "questions": [{"questionText": str, "bloomLevel": str}]}'
    rules = "Questions must require a written answer that shows understanding, application or analysis."
  bloom = f"Target Bloom's taxonomy level: {params.bloom_level}." if params.bloom_level else "Mix difficulty to suit the content."
  return (
    "You are an expert test creator for educational assessments.\n"
    f"Write exactly {params.number_of_questions} {params.question_type} questions based only on the content below.\n"
    f"{rules}\n{bloom}\n{_MATH_RULE}\n"
    f"Respond with JSON shaped as {shape}.\n\n"
    f"Content:\n{text}"
  )


def _flashcards_prompt(params: FlashcardsParams, text: str) -> str:
  return (
    "You create concise study flashcards.\n"
    f"Write {params.number_of_flashcards} flashcards covering the key terms, concepts and facts in the content below.\n"
    f"Keep both sides short. {_MATH_RULE}\n"
    'Respond with JSON shaped as {"title": str, "flashcards": [{"front": str, "back": str}]}.\n\n'
    f"Content:\n{text}"
  )


def _notes_prompt(params: NotesParams, text: str) -> str:
  return (
    "You write engaging, easy-to-read study notes in Markdown.\n"
    f"Length: {params.note_length} ({_NOTE_LENGTH_GUIDE[params.note_length]}).\n"
    "notesContent must start with the title as a Markdown H1 heading and use headings, lists and bold key terms.\n"
    f"{_MATH_RULE}\n"
    'Respond with JSON shaped as {"title": str, "notesContent": str}.\n\n'
    f"Content:\n{text}"
  )


def build_generation_prompt(kind: MaterialKind, params: GenerationParams, text: str) -> str:
  kind = MaterialKind(kind)
  if kind == MaterialKind.TEST:
    return _test_prompt(params, text)  # type: ignore[arg-type]
  if kind == MaterialKind.FLASHCARDS:
    return _flashcards_prompt(params, text)  # type: ignore[arg-type]
  return _notes_prompt(params, text)  # type: ignore[arg-type]
