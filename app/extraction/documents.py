"""Extractors for document formats parsed locally."""

from __future__ import annotations

import io
import logging
import zipfile

import docx
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PyPdfError
from starlette.concurrency import run_in_threadpool

from app.core.errors import ExtractionError

logger = logging.getLogger(__name__)


class PdfTextExtractor:
  """Concatenate page text, one line break between pages."""

  async def extract(self, data: bytes, *, mime_type: str) -> str:
    return await run_in_threadpool(self._extract_sync, data)

  @staticmethod
  def _extract_sync(data: bytes) -> str:
    try:
      reader = PdfReader(io.BytesIO(data))
      pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError) as exc:
      raise ExtractionError(f"Failed to parse PDF: {exc}") from exc
    logger.debug("Extracted text from %d PDF pages", len(pages))
    return "\n".join(pages).strip()


class DocxTextExtractor:
  """Raw text of paragraphs followed by table cells."""

  async def extract(self, data: bytes, *, mime_type: str) -> str:
    return await run_in_threadpool(self._extract_sync, data)

  @staticmethod
  def _extract_sync(data: bytes) -> str:
    try:
      document = docx.Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, ValueError, KeyError) as exc:
      raise ExtractionError(f"Failed to parse DOCX: {exc}") from exc

    parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
    for table in document.tables:
      for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
        if cells:
          parts.append(" | ".join(cells))
    return "\n".join(parts).strip()


class PlainTextExtractor:
  """Decode text files, UTF-8 first."""

  async def extract(self, data: bytes, *, mime_type: str) -> str:
    try:
      return data.decode("utf-8").strip()
    except UnicodeDecodeError:
      return data.decode("latin-1").strip()
