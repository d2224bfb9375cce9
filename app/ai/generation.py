"""Turns source text into a validated study artifact through a language model."""

from __future__ import annotations

import logging
from typing import Any

from app.ai.prompts import build_generation_prompt
from app.ai.providers.base import AIModel
from app.ai.providers.gemini import GeminiProvider
from app.config import Settings
from app.core.errors import ArtifactValidationError, GenerationError
from app.materials.artifacts import validate_artifact
from app.materials.models import MaterialKind
from app.materials.params import parse_generation_params

logger = logging.getLogger(__name__)

SAFETY_BLOCKED_MESSAGE = "Content generation blocked due to safety settings. Try a different prompt."
QUOTA_EXCEEDED_MESSAGE = "AI processing quota exceeded. Please try again later."


def friendly_generation_error(exc: Exception) -> str:
  """Map provider failures onto messages a user can act on."""
  message = str(exc)
  upper = message.upper()
  if "SAFETY" in upper or "BLOCKED" in upper:
    return SAFETY_BLOCKED_MESSAGE
  if "QUOTA" in upper or "429" in message or "RESOURCE_EXHAUSTED" in upper or "RESOURCE EXHAUSTED" in upper:
    return QUOTA_EXCEEDED_MESSAGE
  return f"AI generation failed: {message}"


class ArtifactGenerator:
  """`generate(kind, text, params) -> artifact`, raising GenerationError on any failure."""

  def __init__(self, model: AIModel) -> None:
    self._model = model

  async def generate(self, kind: MaterialKind, text: str, params: dict[str, Any] | None = None, *, source_name: str | None = None) -> dict[str, Any]:
    kind = MaterialKind(kind)
    if not text or not text.strip():
      raise GenerationError("No source text to generate from.")
    parsed_params = parse_generation_params(kind, params)
    prompt = build_generation_prompt(kind, parsed_params, text.strip())

    try:
      response = await self._model.generate_structured(prompt)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Generation call failed for kind=%s: %s", kind.value, exc)
      raise GenerationError(friendly_generation_error(exc)) from exc

    if response.usage:
      logger.info("Generation usage kind=%s tokens=%s", kind.value, response.usage.get("total_tokens"))
    try:
      return validate_artifact(kind, response.content, source_name=source_name)
    except ArtifactValidationError:
      logger.warning("Generation for kind=%s returned an unusable artifact", kind.value)
      raise


def build_artifact_generator(settings: Settings) -> ArtifactGenerator:
  if not settings.gemini_api_key:
    raise GenerationError("AI generation is not configured.")
  return ArtifactGenerator(GeminiProvider(api_key=settings.gemini_api_key).get_model(settings.generation_model))
