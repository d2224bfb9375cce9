from __future__ import annotations

import logging

from app.ai.providers.gemini import GeminiProvider
from app.config import Settings
from app.extraction.documents import DocxTextExtractor, PdfTextExtractor, PlainTextExtractor
from app.extraction.ocr import ImageTextExtractor, ModelOcrClient, OcrClient
from app.extraction.registry import DOCX_MIME, PDF_MIME, TEXT_MIME, ExtractorRegistry

logger = logging.getLogger(__name__)


def build_ocr_client(settings: Settings) -> OcrClient | None:
  """Return the OCR collaborator, or None when no model credentials are configured."""
  if not settings.gemini_api_key:
    logger.warning("GEMINI_API_KEY not set; image extraction is unavailable.")
    return None
  model = GeminiProvider(api_key=settings.gemini_api_key).get_model(settings.ocr_model)
  return ModelOcrClient(model)


def build_extractor_registry(settings: Settings) -> ExtractorRegistry:
  """Factory for the default MIME-type to extractor mapping."""
  return ExtractorRegistry(
    {
      PDF_MIME: PdfTextExtractor(),
      DOCX_MIME: DocxTextExtractor(),
      TEXT_MIME: PlainTextExtractor(),
      "image/*": ImageTextExtractor(build_ocr_client(settings)),
    }
  )
