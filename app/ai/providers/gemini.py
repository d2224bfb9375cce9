"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Any, Final, cast

from google import genai
from google.genai import types

from app.ai.json_parser import parse_json_with_fallback
from app.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse, StructuredModelResponse

logger = logging.getLogger(__name__)


def _usage_from(response: Any) -> dict[str, int] | None:
  metadata = getattr(response, "usage_metadata", None)
  if not metadata:
    return None
  return {"prompt_tokens": metadata.prompt_token_count, "completion_tokens": metadata.candidates_token_count, "total_tokens": metadata.total_token_count}


def _blocked_reason(response: Any) -> str | None:
  """Return the block reason when the prompt or every candidate was stopped for safety."""
  feedback = getattr(response, "prompt_feedback", None)
  if feedback is not None and getattr(feedback, "block_reason", None):
    return str(feedback.block_reason)
  candidates = getattr(response, "candidates", None) or []
  for candidate in candidates:
    finish_reason = str(getattr(candidate, "finish_reason", "") or "")
    if "SAFETY" in finish_reason:
      return finish_reason
  return None


class GeminiModel(AIModel):
  """Gemini model client with JSON-mode and inline image support."""

  def __init__(self, name: str, api_key: str | None = None) -> None:
    self.name: str = name
    self.supports_structured_output = True
    self.supports_images = True
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")

    self._client = genai.Client(api_key=api_key)

  async def generate(self, prompt: str) -> ModelResponse:
    """Generate text response from Gemini."""
    response = await _with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt)
    reason = _blocked_reason(response)
    if reason:
      raise RuntimeError(f"Gemini blocked the response: {reason}")
    return SimpleModelResponse(content=response.text or "", usage=_usage_from(response))

  async def generate_structured(self, prompt: str, schema: dict[str, Any] | None = None) -> StructuredModelResponse:
    """Generate JSON output using Gemini's JSON mode."""
    config: dict[str, Any] = {"response_mime_type": "application/json"}
    if schema is not None:
      config["response_schema"] = schema
    response = await _with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=config)
    reason = _blocked_reason(response)
    if reason:
      raise RuntimeError(f"Gemini blocked the response: {reason}")

    logger.debug("Gemini structured response (raw):\n%s", response.text)
    try:
      cleaned = self.strip_json_fences(response.text or "")
      parsed = parse_json_with_fallback(cleaned)
    except json.JSONDecodeError as e:
      raise RuntimeError(f"Gemini returned invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
      raise RuntimeError("Gemini returned JSON that is not an object.")
    return StructuredModelResponse(content=cast(dict[str, Any], parsed), usage=_usage_from(response))

  async def generate_with_image(self, prompt: str, image_bytes: bytes, mime_type: str) -> ModelResponse:
    """Generate a text response from a prompt and one inline image."""
    contents = [types.Part.from_bytes(data=image_bytes, mime_type=mime_type), prompt]
    try:
      response = await _with_backoff(self._client.aio.models.generate_content, model=self.name, contents=contents)
    except Exception as e:
      raise RuntimeError(f"Gemini generation with image failed: {e}") from e
    reason = _blocked_reason(response)
    if reason:
      raise RuntimeError(f"Gemini blocked the response: {reason}")
    return SimpleModelResponse(content=response.text or "", usage=_usage_from(response))


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.0-flash"
  _AVAILABLE_MODELS: Final[set[str]] = {"gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.0-flash", "gemini-2.0-flash-lite"}

  def __init__(self, api_key: str | None = None) -> None:
    self.name: str = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> AIModel:
    """Return a Gemini model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported Gemini model '{model_name}'.")
    return GeminiModel(model_name, api_key=self._api_key)


async def _with_backoff(func, *args, **kwargs):
  retries = 3
  base_delay = 1
  for i in range(retries):
    try:
      return await func(*args, **kwargs)
    except Exception as e:
      # Only rate limiting is retried; everything else surfaces immediately.
      if "429" in str(e) or "Too Many Requests" in str(e):
        if i == retries - 1:
          raise
        delay = base_delay * (2**i) + random.uniform(0, 1)
        logger.warning("Gemini rate limited; retrying in %.1fs", delay)
        await asyncio.sleep(delay)
      else:
        raise
  return await func(*args, **kwargs)
