"""MIME-type keyed registry of text extractors."""

from __future__ import annotations

from typing import Protocol

from app.core.errors import UnsupportedFormatError

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
PPT_MIME = "application/vnd.ms-powerpoint"
TEXT_MIME = "text/plain"
_PRESENTATION_MIMES = frozenset({PPTX_MIME, PPT_MIME})


class TextExtractor(Protocol):
  """Turns raw file bytes into plain text, raising on parse failures."""

  async def extract(self, data: bytes, *, mime_type: str) -> str:
    """Return the text content of `data`."""


class ExtractorRegistry:
  """Registry mapping MIME types (or `family/*` wildcards) to extractors."""

  def __init__(self, extractors: dict[str, TextExtractor]) -> None:
    self._extractors = extractors

  def resolve(self, mime_type: str) -> TextExtractor:
    """Resolve the extractor for a MIME type, raising UnsupportedFormatError when none applies."""
    normalized = mime_type.split(";", 1)[0].strip().lower()
    # Presentations are recognized but deliberately have no extractor.
    if normalized in _PRESENTATION_MIMES:
      raise UnsupportedFormatError("PPTX file processing is not yet supported.")
    extractor = self._extractors.get(normalized)
    if extractor is None:
      family = normalized.split("/", 1)[0]
      extractor = self._extractors.get(f"{family}/*")
    if extractor is None:
      raise UnsupportedFormatError(f"File type {mime_type} is not supported for text extraction.")
    return extractor

  def supports(self, mime_type: str) -> bool:
    try:
      self.resolve(mime_type)
    except UnsupportedFormatError:
      return False
    return True
