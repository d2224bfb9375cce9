"""Image text recognition backed by a multimodal model."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Protocol

from app.ai.providers.base import AIModel
from app.core.errors import ExtractionError

logger = logging.getLogger(__name__)

_OCR_PROMPT = (
  "You are an OCR bot. Extract all text from this image of notes, handwritten or printed. "
  "Preserve line breaks and reading order. Return only the extracted text, with no commentary."
)


class OcrClient(Protocol):
  """Text-recognition collaborator taking a base64 data URI."""

  async def recognize(self, data_uri: str) -> str:
    """Return the text found in the encoded image."""


def to_data_uri(data: bytes, mime_type: str) -> str:
  return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(data_uri: str) -> tuple[str, bytes]:
  """Split `data:<mime>;base64,<payload>` into its MIME type and decoded bytes."""
  header, sep, payload = data_uri.partition(",")
  if not sep or not header.startswith("data:") or not header.endswith(";base64"):
    raise ValueError("Expected a base64 data URI.")
  mime_type = header[len("data:") : -len(";base64")] or "application/octet-stream"
  try:
    return mime_type, base64.b64decode(payload, validate=True)
  except binascii.Error as exc:
    raise ValueError(f"Invalid base64 payload: {exc}") from exc


class ModelOcrClient:
  """OCR through any AIModel that accepts inline images."""

  def __init__(self, model: AIModel) -> None:
    if not model.supports_images:
      raise ValueError(f"Model {model.name} does not accept images.")
    self._model = model

  async def recognize(self, data_uri: str) -> str:
    mime_type, image_bytes = parse_data_uri(data_uri)
    response = await self._model.generate_with_image(_OCR_PROMPT, image_bytes, mime_type)
    return (response.content or "").strip()


class ImageTextExtractor:
  """Routes image bytes through the OCR collaborator."""

  def __init__(self, ocr_client: OcrClient | None) -> None:
    self._ocr_client = ocr_client

  async def extract(self, data: bytes, *, mime_type: str) -> str:
    if self._ocr_client is None:
      raise ExtractionError("OCR service not available")
    try:
      return await self._ocr_client.recognize(to_data_uri(data, mime_type))
    except ExtractionError:
      raise
    except Exception as exc:
      logger.warning("OCR call failed for %s image: %s", mime_type, exc)
      raise ExtractionError(f"OCR failed: {exc}") from exc
